"""Tests for the secrets migration ops and jobs."""

from unittest.mock import MagicMock, patch

import pytest
from dagster import build_op_context

from octoterra_secrets.extraction import ExtractionResult
from octoterra_secrets.jobs.secrets import (
    extract_secrets_job,
    extract_sensitive_values,
    publish_sensitive_values,
    spread_sensitive_variables,
)
from octoterra_secrets.octopus import SpreadResult
from octoterra_secrets.resources import OctopusServerResource, SourceDatabaseResource


@pytest.fixture
def source_database():
    return SourceDatabaseResource(
        server="sql.example.com",
        user="sa",
        password="db-password",
        master_key="6EdU6IWsCtMEwk0kPKflQQ==",
    )


@pytest.fixture
def octopus_server():
    return OctopusServerResource(
        server="https://octopus.example.com",
        api_key="API-TESTKEY",
        container_name="Octoterra",
        variable_name="SecretsFile",
    )


@pytest.fixture
def extraction():
    return ExtractionResult(
        variable_file='feed_nuget_password = "plain-secret"\n',
        counts={"feed": 1},
        names=["feed_nuget_password"],
    )


class TestResources:
    """Test resource helpers."""

    def test_connection_config(self, source_database):
        config = source_database.get_connection_config()
        assert config.server == "sql.example.com"
        assert config.port == 1433
        assert "db-password" not in repr(config)

    def test_extract_passes_reserved_name(self, source_database, extraction):
        with patch("octoterra_secrets.resources.extract_variables", return_value=extraction) as extract:
            assert source_database.extract() is extraction
        assert extract.call_args.kwargs["options"].reserved_variable_name == source_database.reserved_variable_name

    def test_publisher_uses_configured_names(self, octopus_server):
        publisher = octopus_server.get_publisher()
        assert publisher.container_name == "Octoterra"
        assert publisher.variable_name == "SecretsFile"
        assert publisher.client.config.server == "https://octopus.example.com"


class TestOps:
    """Test ops by direct invocation."""

    def test_extract_sensitive_values(self, source_database, extraction):
        with patch("octoterra_secrets.resources.extract_variables", return_value=extraction):
            result = extract_sensitive_values(build_op_context(), source_database=source_database)
        assert result.total == 1

    def test_publish_sensitive_values(self, octopus_server, extraction):
        publisher = MagicMock()
        with patch.object(OctopusServerResource, "get_publisher", return_value=publisher):
            publish_sensitive_values(build_op_context(), octopus_server=octopus_server, extraction=extraction)
        publisher.publish.assert_called_once_with(extraction.variable_file)

    def test_spread_sensitive_variables(self, octopus_server):
        spreader = MagicMock()
        spreader.spread_all.return_value = [
            SpreadResult("variableset-1", "var-1", "token", "token_web", "#{token_web}"),
            SpreadResult("variableset-1", "var-2", "token", "token_worker", "#{token_worker}"),
        ]
        with patch.object(OctopusServerResource, "get_spreader", return_value=spreader):
            count = spread_sensitive_variables(build_op_context(), octopus_server=octopus_server)
        assert count == 2


class TestExtractSecretsJob:
    """Test the extract and publish job end to end."""

    def test_runs_in_process(self, source_database, octopus_server, extraction):
        publisher = MagicMock()
        with patch("octoterra_secrets.resources.extract_variables", return_value=extraction), \
                patch.object(OctopusServerResource, "get_publisher", return_value=publisher):
            result = extract_secrets_job.execute_in_process(
                resources={"source_database": source_database, "octopus_server": octopus_server},
            )

        assert result.success
        publisher.publish.assert_called_once_with(extraction.variable_file)
