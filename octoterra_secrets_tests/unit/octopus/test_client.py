"""Tests for the Octopus REST client."""

import json
from unittest.mock import MagicMock

import pytest
import requests
from pydantic import ValidationError

from octoterra_secrets.exceptions import OctopusApiError
from octoterra_secrets.octopus.client import API_KEY_HEADER, OctopusClient
from octoterra_secrets.octopus.models import OctopusConnectionConfig, Variable, VariableSet

SERVER = "https://octopus.example.com"


def make_response(status_code=200, body=None, headers=None, content=None):
    response = requests.Response()
    response.status_code = status_code
    response.url = SERVER
    if content is not None:
        response._content = content
    else:
        response._content = json.dumps(body).encode() if body is not None else b""
    response.headers.update(headers or {})
    return response


def variable_set_body(*variables):
    return {
        "Id": "variableset-1",
        "OwnerId": "LibraryVariableSets-1",
        "Version": 4,
        "Variables": list(variables),
    }


@pytest.fixture
def config():
    return OctopusConnectionConfig(
        server=f"{SERVER}/",
        api_key="API-TESTKEY",
        space_id="Spaces-2",
        retries=3,
        retry_base_delay=0.001,
    )


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(config, session):
    return OctopusClient(config, session=session)


class TestOctopusConnectionConfig:
    """Test OctopusConnectionConfig validation."""

    def test_strips_trailing_slash(self, config):
        assert config.server == SERVER

    def test_rejects_bad_scheme(self):
        with pytest.raises(ValidationError):
            OctopusConnectionConfig(server="octopus.example.com", api_key="API-X")

    def test_rejects_blank_api_key(self):
        with pytest.raises(ValidationError):
            OctopusConnectionConfig(server=SERVER, api_key="   ")

    def test_retries_bounds(self):
        with pytest.raises(ValidationError):
            OctopusConnectionConfig(server=SERVER, api_key="API-X", retries=0)

    def test_repr_hides_api_key(self, config):
        assert "API-TESTKEY" not in repr(config)


class TestRequests:
    """Test request construction and error mapping."""

    def test_sets_api_key_header(self, client, session):
        assert session.headers[API_KEY_HEADER] == "API-TESTKEY"
        assert "API-TESTKEY" not in repr(client)

    def test_space_scoped_url(self, client, session):
        session.request.return_value = make_response(body=variable_set_body())
        client.get_variable_set("variableset-1")

        args, kwargs = session.request.call_args
        assert args == ("GET", f"{SERVER}/api/Spaces-2/variables/variableset-1")
        assert kwargs["timeout"] == client.config.timeout
        assert kwargs["verify"] is True

    def test_client_error_is_not_retried(self, client, session):
        session.request.return_value = make_response(404)

        with pytest.raises(OctopusApiError) as exc_info:
            client.get_variable_set("variableset-404")

        assert exc_info.value.status_code == 404
        assert exc_info.value.details["attempts"] == 1
        assert session.request.call_count == 1

    def test_server_error_is_retried(self, client, session):
        session.request.side_effect = [
            make_response(503),
            make_response(body=variable_set_body()),
        ]
        assert client.get_variable_set("variableset-1").version == 4
        assert session.request.call_count == 2

    def test_throttling_is_retried(self, client, session):
        session.request.side_effect = [
            make_response(429, headers={"Retry-After": "0"}),
            make_response(body=variable_set_body()),
        ]
        client.get_variable_set("variableset-1")
        assert session.request.call_count == 2

    def test_retries_exhausted(self, client, session):
        session.request.return_value = make_response(502)

        with pytest.raises(OctopusApiError) as exc_info:
            client.get_variable_set("variableset-1")

        assert exc_info.value.status_code == 502
        assert exc_info.value.details["attempts"] == 3
        assert session.request.call_count == 3

    def test_connection_error_has_no_status(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(OctopusApiError) as exc_info:
            client.list_library_variable_sets()

        assert exc_info.value.status_code is None
        assert session.request.call_count == 3

    def test_body_that_is_not_json(self, client, session):
        session.request.return_value = make_response(content=b"<html>")
        with pytest.raises(OctopusApiError):
            client.list_library_variable_sets()


class TestLibraryVariableSets:
    """Test library variable set calls."""

    def test_find_matches_exact_name(self, client, session):
        session.request.return_value = make_response(body={"Items": [
            {"Id": "LibraryVariableSets-1", "Name": "Octoterra Extra", "VariableSetId": "variableset-1"},
            {"Id": "LibraryVariableSets-2", "Name": "Octoterra", "VariableSetId": "variableset-2"},
        ]})

        found = client.find_library_variable_set("Octoterra")

        assert found.id == "LibraryVariableSets-2"
        assert found.variable_set_id == "variableset-2"
        assert session.request.call_args.kwargs["params"]["partialName"] == "Octoterra"

    def test_find_returns_none(self, client, session):
        session.request.return_value = make_response(body={"Items": [{"Name": "Octoterra Extra"}]})
        assert client.find_library_variable_set("Octoterra") is None

    def test_list(self, client, session):
        session.request.return_value = make_response(body=[
            {"Id": "LibraryVariableSets-1", "Name": "A", "VariableSetId": "variableset-1"},
            {"Id": "LibraryVariableSets-2", "Name": "B", "VariableSetId": "variableset-2"},
        ])
        assert [lvs.name for lvs in client.list_library_variable_sets()] == ["A", "B"]
        assert session.request.call_args.args[1].endswith("/libraryvariablesets/all")

    def test_create_posts_pascal_case_body(self, client, session):
        session.request.return_value = make_response(body={
            "Id": "LibraryVariableSets-9", "Name": "Octoterra", "VariableSetId": "variableset-9",
        })

        created = client.create_library_variable_set("Octoterra", description="secrets")

        args, kwargs = session.request.call_args
        assert args[0] == "POST"
        assert kwargs["json"]["Name"] == "Octoterra"
        assert kwargs["json"]["ContentType"] == "Variables"
        assert created.variable_set_id == "variableset-9"


class TestVariableOperations:
    """Test read-modify-write variable operations."""

    def test_add_variable_puts_whole_set(self, client, session):
        existing = {"Id": "var-1", "Name": "Other", "Value": "x", "Scope": {}}
        session.request.side_effect = [
            make_response(body=variable_set_body(existing)),
            make_response(body=variable_set_body(existing, {"Id": "var-2", "Name": "New"})),
        ]

        client.add_variable("variableset-1", Variable(name="New", value="secret", type="Sensitive", is_sensitive=True))

        method, _ = session.request.call_args.args
        body = session.request.call_args.kwargs["json"]
        assert method == "PUT"
        assert body["Version"] == 4
        assert [v["Name"] for v in body["Variables"]] == ["Other", "New"]
        assert body["Variables"][1]["IsSensitive"] is True

    def test_unknown_fields_survive_round_trip(self, client, session):
        existing = {"Id": "var-1", "Name": "Other", "Prompt": {"Label": "x"}, "Scope": {}}
        session.request.side_effect = [
            make_response(body=variable_set_body(existing)),
            make_response(body=variable_set_body(existing)),
        ]

        client.delete_variable("variableset-1", "var-unknown")

        body = session.request.call_args.kwargs["json"]
        assert body["Variables"][0]["Prompt"] == {"Label": "x"}

    def test_update_variable_replaces_by_id(self, client, session):
        existing = {"Id": "var-1", "Name": "Old", "Scope": {"Environment": ["Environments-1"]}}
        session.request.side_effect = [
            make_response(body=variable_set_body(existing)),
            make_response(body=variable_set_body(existing)),
        ]

        client.update_variable("variableset-1", Variable(id="var-1", name="Renamed"))

        body = session.request.call_args.kwargs["json"]
        assert [v["Name"] for v in body["Variables"]] == ["Renamed"]
        assert body["Variables"][0]["Scope"] == {}

    def test_update_missing_variable(self, client, session):
        session.request.return_value = make_response(body=variable_set_body())

        with pytest.raises(OctopusApiError) as exc_info:
            client.update_variable("variableset-1", Variable(id="var-missing", name="x"))

        assert exc_info.value.status_code == 404
        assert session.request.call_count == 1

    def test_delete_variable(self, client, session):
        session.request.side_effect = [
            make_response(body=variable_set_body(
                {"Id": "var-1", "Name": "A"}, {"Id": "var-2", "Name": "B"},
            )),
            make_response(body=variable_set_body({"Id": "var-2", "Name": "B"})),
        ]

        updated = client.delete_variable("variableset-1", "var-1")

        assert [v["Id"] for v in session.request.call_args.kwargs["json"]["Variables"]] == ["var-2"]
        assert isinstance(updated, VariableSet)
