"""Migration orchestrator for moving Octopus sensitive values to a new server.

This module provides the main script to orchestrate the secrets migration:
1. Validate the connection to the source Octopus database
2. Extract and decrypt every sensitive value into a Terraform variable file
3. Publish the variable file as one sensitive variable on the destination
4. Spread scoped sensitive variables on the destination (irreversible)

Credentials are read from the environment (or the project's .env file),
never from the command line: OCTOPUS_DB_PASSWORD, OCTOPUS_MASTER_KEY and
OCTOPUS_DESTINATION_API_KEY.

Usage:
    python -m octoterra_secrets.migration.migrate --dry-run
    python -m octoterra_secrets.migration.migrate --phase all

Example:
    # Extract without publishing, printing only the variable names
    python -m octoterra_secrets.migration.migrate --phase extract --dry-run

    # Validate, extract and publish
    python -m octoterra_secrets.migration.migrate --phase all

    # Spread scoped sensitive variables without an interactive prompt
    python -m octoterra_secrets.migration.migrate --phase spread --confirm
"""

import argparse
import logging
import sys
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from octoterra_secrets import config as settings
from octoterra_secrets.exceptions import ConfigurationError, SecretsMigrationError
from octoterra_secrets.extraction import (
    DatabaseConnectionConfig,
    ExtractionOptions,
    ExtractionResult,
    extract_variables,
    validate_database,
)
from octoterra_secrets.octopus import (
    OctopusClient,
    OctopusConnectionConfig,
    ScopeSpreader,
    SecretsPublisher,
    build_unique_name,
    find_colliding_variables,
)

logger = logging.getLogger(__name__)


class MigrationPhase(Enum):
    """Migration phases."""
    VALIDATE = "validate"
    EXTRACT = "extract"
    PUBLISH = "publish"
    SPREAD = "spread"
    ALL = "all"


# Phases run by ALL; spreading is irreversible and always requested explicitly
ALL_PHASES = [MigrationPhase.VALIDATE, MigrationPhase.EXTRACT, MigrationPhase.PUBLISH]


@dataclass
class MigrationConfig:
    """Configuration for the migration."""
    db_server: Optional[str] = None
    db_port: str = "1433"
    db_name: str = "Octopus"
    db_user: Optional[str] = None
    db_password: Optional[str] = field(default=None, repr=False)
    master_key: Optional[str] = field(default=None, repr=False)
    destination_server: Optional[str] = None
    destination_api_key: Optional[str] = field(default=None, repr=False)
    destination_space: str = "Spaces-1"
    container_name: str = settings.SECRETS_LIBRARY_VARIABLE_SET_NAME
    variable_name: str = settings.SECRETS_VARIABLE_NAME
    verify: bool = True
    dry_run: bool = False
    confirm: bool = False

    @classmethod
    def from_env(cls, **overrides) -> "MigrationConfig":
        """Build configuration from the settings module, then apply overrides."""
        values = dict(
            db_server=settings.OCTOPUS_DB_SERVER,
            db_port=settings.OCTOPUS_DB_PORT,
            db_name=settings.OCTOPUS_DB_NAME,
            db_user=settings.OCTOPUS_DB_USER,
            db_password=settings.OCTOPUS_DB_PASSWORD,
            master_key=settings.OCTOPUS_MASTER_KEY,
            destination_server=settings.OCTOPUS_DESTINATION_SERVER,
            destination_api_key=settings.OCTOPUS_DESTINATION_API_KEY,
            destination_space=settings.OCTOPUS_DESTINATION_SPACE,
        )
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


@dataclass
class MigrationResult:
    """Result of one migration phase."""
    phase: str = ""
    success: bool = False
    message: str = ""
    details: dict = field(default_factory=dict)


class MigrationOrchestrator:
    """Orchestrator for the secrets migration process."""

    def __init__(
        self,
        config: MigrationConfig,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize the migration orchestrator.

        Args:
            config: Migration configuration.
            cancel_event: Optional event that stops extraction or spreading
                between steps.
        """
        self.config = config
        self.cancel_event = cancel_event
        self.extraction_result: Optional[ExtractionResult] = None

    def _confirm_action(self, action: str) -> bool:
        """Confirm an action with the user.

        Args:
            action: Description of the action.

        Returns:
            True if confirmed, False otherwise.
        """
        if self.config.confirm:
            return True

        response = input(f"\n{action}\n\nProceed? [y/N]: ").strip().lower()
        return response in ["y", "yes"]

    def _db_config(self) -> DatabaseConnectionConfig:
        missing = [
            name for name, value in (
                ("OCTOPUS_DB_SERVER", self.config.db_server),
                ("OCTOPUS_DB_USER", self.config.db_user),
                ("OCTOPUS_DB_PASSWORD", self.config.db_password),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(
                "Missing database settings",
                details={"missing": missing},
            )
        try:
            return DatabaseConnectionConfig(
                server=self.config.db_server,
                port=self.config.db_port,
                database=self.config.db_name,
                user=self.config.db_user,
                password=self.config.db_password,
            )
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid database settings",
                details={"fields": [".".join(str(loc) for loc in err["loc"]) for err in e.errors()]},
            ) from e

    def _master_key(self) -> str:
        if not self.config.master_key:
            raise ConfigurationError(
                "Missing master key",
                details={"missing": ["OCTOPUS_MASTER_KEY"]},
            )
        return self.config.master_key

    def _client(self) -> OctopusClient:
        missing = [
            name for name, value in (
                ("OCTOPUS_DESTINATION_SERVER", self.config.destination_server),
                ("OCTOPUS_DESTINATION_API_KEY", self.config.destination_api_key),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(
                "Missing destination server settings",
                details={"missing": missing},
            )
        try:
            octopus_config = OctopusConnectionConfig(
                server=self.config.destination_server,
                api_key=self.config.destination_api_key,
                space_id=self.config.destination_space,
                verify=self.config.verify,
            )
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid destination server settings",
                details={"fields": [".".join(str(loc) for loc in err["loc"]) for err in e.errors()]},
            ) from e
        return OctopusClient(octopus_config)

    def run_phase_validate(self) -> MigrationResult:
        """Phase 1: Validate the source database connection.

        Returns:
            MigrationResult with the validation outcome.
        """
        print("\n" + "=" * 60)
        print("PHASE 1: VALIDATE SOURCE DATABASE")
        print("=" * 60)

        db_config = self._db_config()
        self._master_key()

        print(f"\nConnecting to {db_config.database} on {db_config.server}:{db_config.port}...")
        validate_database(db_config)
        print("Database connection OK")

        return MigrationResult(
            phase="validate",
            success=True,
            message="Database connection validated",
            details={"server": db_config.server, "database": db_config.database},
        )

    def run_phase_extract(self) -> MigrationResult:
        """Phase 2: Extract and decrypt sensitive values.

        Returns:
            MigrationResult with per entity kind counts.
        """
        print("\n" + "=" * 60)
        print("PHASE 2: EXTRACT SENSITIVE VALUES")
        print("=" * 60)

        options = ExtractionOptions(reserved_variable_name=self.config.variable_name)
        self.extraction_result = extract_variables(
            self._db_config(),
            self._master_key(),
            options=options,
            cancel_event=self.cancel_event,
        )
        result = self.extraction_result

        print("\nSensitive values extracted:")
        print("-" * 60)
        for kind, count in result.counts.items():
            print(f"  {kind}: {count}")

        if self.config.dry_run:
            print("\nVariables that would be written (names only):")
            for name in result.names:
                print(f"  - {name}")

        return MigrationResult(
            phase="extract",
            success=True,
            message=f"Extracted {result.total} sensitive values",
            details={"counts": dict(result.counts)},
        )

    def run_phase_publish(self) -> MigrationResult:
        """Phase 3: Publish the variable file to the destination server.

        Returns:
            MigrationResult with publish summary.
        """
        print("\n" + "=" * 60)
        print("PHASE 3: PUBLISH TO DESTINATION SERVER")
        print("=" * 60)

        if self.extraction_result is None:
            return MigrationResult(
                phase="publish",
                success=False,
                message="Nothing to publish. Run extract phase first.",
            )

        target = f"{self.config.container_name}/{self.config.variable_name}"
        if self.config.dry_run:
            print(f"\n[DRY RUN] Would publish {self.extraction_result.total} values to {target}")
            return MigrationResult(
                phase="publish",
                success=True,
                message="Dry run completed - nothing published",
                details={"would_publish": self.extraction_result.total},
            )

        publisher = SecretsPublisher(
            self._client(),
            container_name=self.config.container_name,
            variable_name=self.config.variable_name,
        )
        publisher.publish(self.extraction_result.variable_file)
        print(f"\nPublished {self.extraction_result.total} values to {target}")

        return MigrationResult(
            phase="publish",
            success=True,
            message=f"Published {target}",
            details={"published": self.extraction_result.total},
        )

    def run_phase_spread(self) -> MigrationResult:
        """Phase 4: Spread scoped sensitive variables on the destination.

        Returns:
            MigrationResult with the renamed variables.
        """
        print("\n" + "=" * 60)
        print("PHASE 4: SPREAD SCOPED SENSITIVE VARIABLES")
        print("=" * 60)

        client = self._client()

        if self.config.dry_run:
            planned = self._preview_spread(client)
            return MigrationResult(
                phase="spread",
                success=True,
                message="Dry run completed - no variables changed",
                details={"would_spread": planned},
            )

        print("\nSpreading renames scoped sensitive variables and replaces them with")
        print("non-sensitive references. The change cannot be undone.")
        if not self._confirm_action("Spread sensitive variables in every library variable set?"):
            return MigrationResult(
                phase="spread",
                success=False,
                message="Spread phase cancelled by user",
            )

        results = ScopeSpreader(client, cancel_event=self.cancel_event).spread_all()
        for result in results:
            print(f"  {result.original_name} -> {result.unique_name}")

        return MigrationResult(
            phase="spread",
            success=True,
            message=f"Spread {len(results)} sensitive variables",
            details={"spread": len(results)},
        )

    def _preview_spread(self, client: OctopusClient) -> int:
        """Print the renames spreading would make, without changing anything."""
        planned = 0
        for library_variable_set in client.list_library_variable_sets():
            if not library_variable_set.variable_set_id:
                continue
            variable_set = client.get_variable_set(library_variable_set.variable_set_id)
            used_names = {variable.name for variable in variable_set.variables}
            for variables in find_colliding_variables(variable_set.variables).values():
                for variable in variables:
                    unique_name = build_unique_name(variable, used_names)
                    used_names.add(unique_name)
                    planned += 1
                    print(f"[DRY RUN] {library_variable_set.name}: {variable.name} -> {unique_name}")
        return planned

    def _run_phase(self, phase: MigrationPhase) -> MigrationResult:
        handlers = {
            MigrationPhase.VALIDATE: self.run_phase_validate,
            MigrationPhase.EXTRACT: self.run_phase_extract,
            MigrationPhase.PUBLISH: self.run_phase_publish,
            MigrationPhase.SPREAD: self.run_phase_spread,
        }
        try:
            return handlers[phase]()
        except SecretsMigrationError as e:
            logger.error(f"Phase '{phase.value}' failed: {e}")
            return MigrationResult(
                phase=phase.value,
                success=False,
                message=e.message,
                details=e.details,
            )

    def run(self, phases: list[MigrationPhase]) -> bool:
        """Run the migration process.

        Args:
            phases: List of phases to run.

        Returns:
            True if all phases succeeded, False otherwise.
        """
        print("\n" + "#" * 60)
        print("# OCTOPUS SECRETS MIGRATION")
        print("#" * 60)

        if self.config.dry_run:
            print("\n[DRY RUN MODE - No changes will be made]")

        print("\nConfiguration:")
        print(f"  Source database: {self.config.db_name} on {self.config.db_server}")
        print(f"  Destination: {self.config.destination_server} ({self.config.destination_space})")
        print(f"  Secrets container: {self.config.container_name}")

        expanded: list[MigrationPhase] = []
        for phase in phases:
            for item in (ALL_PHASES if phase == MigrationPhase.ALL else [phase]):
                if item not in expanded:
                    expanded.append(item)

        results: list[MigrationResult] = []
        for phase in expanded:
            result = self._run_phase(phase)
            results.append(result)

            if not result.success:
                print(f"\n[ERROR] Phase '{phase.value}' failed: {result.message}")
                break

        print("\n" + "#" * 60)
        print("# MIGRATION SUMMARY")
        print("#" * 60)

        all_success = True
        for result in results:
            status = "✓" if result.success else "✗"
            print(f"  {status} {result.phase}: {result.message}")
            if not result.success:
                all_success = False

        return all_success


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Migrate Octopus sensitive values to a destination Octopus server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Extract only, printing the variable names that would be written
    python -m octoterra_secrets.migration.migrate --phase extract --dry-run

    # Validate, extract and publish
    python -m octoterra_secrets.migration.migrate --phase all

    # Spread scoped sensitive variables
    python -m octoterra_secrets.migration.migrate --phase spread --confirm
        """
    )

    parser.add_argument(
        "--db-server",
        default=None,
        help="Source database server (default: OCTOPUS_DB_SERVER)"
    )
    parser.add_argument(
        "--db-port",
        default=None,
        help="Source database port (default: OCTOPUS_DB_PORT or 1433)"
    )
    parser.add_argument(
        "--db-name",
        default=None,
        help="Source database name (default: OCTOPUS_DB_NAME or Octopus)"
    )
    parser.add_argument(
        "--db-user",
        default=None,
        help="Source database user (default: OCTOPUS_DB_USER)"
    )
    parser.add_argument(
        "--server",
        default=None,
        help="Destination Octopus server URL (default: OCTOPUS_DESTINATION_SERVER)"
    )
    parser.add_argument(
        "--space",
        default=None,
        help="Destination space ID (default: OCTOPUS_DESTINATION_SPACE or Spaces-1)"
    )
    parser.add_argument(
        "--no-verify",
        action="store_true",
        help="Disable TLS verification"
    )
    parser.add_argument(
        "--phase", "-s",
        action="append",
        choices=[phase.value for phase in MigrationPhase],
        default=[],
        help="Phases to run (can be specified multiple times)"
    )
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Extract without publishing and print only variable names"
    )
    parser.add_argument(
        "--confirm", "-y",
        action="store_true",
        help="Skip the confirmation prompt before spreading"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the migration orchestrator."""
    args = build_parser().parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    config = MigrationConfig.from_env(
        db_server=args.db_server,
        db_port=args.db_port,
        db_name=args.db_name,
        db_user=args.db_user,
        destination_server=args.server,
        destination_space=args.space,
    )
    config.verify = not args.no_verify
    config.dry_run = args.dry_run
    config.confirm = args.confirm

    phases = [MigrationPhase(p) for p in (args.phase or ["all"])]
    cancel_event = threading.Event()
    orchestrator = MigrationOrchestrator(config, cancel_event=cancel_event)

    try:
        success = orchestrator.run(phases)
    except KeyboardInterrupt:
        cancel_event.set()
        print("\nInterrupted")
        return 130

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
