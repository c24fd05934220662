"""Tests for Terraform variable naming."""

import re

import pytest

from octoterra_secrets.extraction import naming

TEST_ID_HASH = "6cc41d5ec590ab78cccecf81ef167d418c309a4598e8e45fef78039f7d9aa9fe"
IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


class TestHashName:
    """Test hash_name."""

    def test_known_digest(self):
        assert naming.hash_name("test-id") == TEST_ID_HASH

    def test_deterministic(self):
        assert naming.hash_name("Variables-42") == naming.hash_name("Variables-42")

    def test_differs_per_input(self):
        assert naming.hash_name("test-id") != naming.hash_name("test-id2")


class TestSanitize:
    """Test sanitize."""

    def test_lowercases_and_replaces(self):
        assert naming.sanitize("My Azure Account!") == "my_azure_account_"

    def test_leading_digit_is_prefixed(self):
        assert naming.sanitize("1st feed") == "_1st_feed"

    def test_leading_symbol_becomes_underscore(self):
        assert naming.sanitize("-dash") == "_dash"

    def test_leading_underscore_is_kept(self):
        assert naming.sanitize("_private") == "_private"

    def test_empty_name(self):
        assert naming.sanitize("") == "_"

    @pytest.mark.parametrize(
        "name",
        ["Octopus", "9lives", "###", "ÜberFeed", "a.b/c:d", "__x", " space first", "MiXeD-CaSe_42"],
    )
    def test_always_valid_identifier(self, name):
        """Test the result is always a valid identifier."""
        assert IDENTIFIER.match(naming.sanitize(name))


class TestEntityNames:
    """Test per entity kind name composition."""

    def test_variable_secret_name(self):
        assert naming.variable_secret_name("test-id") == f"variable_{TEST_ID_HASH}_sensitive_value"

    def test_roles_never_collide_for_same_source(self):
        """Test each role has its own name even for the same raw id or name."""
        hashed = {
            naming.variable_secret_name("same"),
            naming.tenant_variable_secret_name("same"),
            naming.git_credential_secret_name("same"),
        }
        sanitized = {
            naming.account_secret_name("same"),
            naming.account_cert_name("same"),
            naming.certificate_data_name("same"),
            naming.certificate_password_name("same"),
            naming.feed_secret_name("same"),
            naming.feed_secret_key_name("same"),
            naming.machine_secret_name("same"),
            naming.machine_proxy_password_name("same"),
        }
        assert len(hashed) == 3
        assert len(sanitized) == 8

    def test_sanitized_names_stay_recognizable(self):
        assert naming.account_secret_name("Azure Prod") == "account_azure_prod_password"
        assert naming.feed_secret_key_name("ECR") == "feed_ecr_secretkey"
        assert naming.machine_secret_name("web-01") == "target_web_01_sensitive_value"

    def test_step_template_name_hashes_whole_key(self):
        """Test the same parameter id in two templates gives two names."""
        first = naming.step_template_parameter_secret_name("template-a", "param-1")
        second = naming.step_template_parameter_secret_name("template-b", "param-1")
        assert first != second
        assert first.startswith("steptemplate_")
        assert first.endswith("_sensitive_value")

    def test_step_property_name_hashes_whole_key(self):
        """Test owner, action and property all contribute to the name."""
        names = {
            naming.step_property_secret_name("Projects-1", "action-1", "Password"),
            naming.step_property_secret_name("Projects-2", "action-1", "Password"),
            naming.step_property_secret_name("Projects-1", "action-2", "Password"),
            naming.step_property_secret_name("Projects-1", "action-1", "Token"),
        }
        assert len(names) == 4

    def test_compound_key_is_unambiguous(self):
        """Test joining parts cannot make two different keys collide."""
        assert naming.compound_key("ab", "c") != naming.compound_key("a", "bc")
        assert naming.compound_key("a|b", "c") != naming.compound_key("a", "b|c")
