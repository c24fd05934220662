"""Extraction coordinator: runs every extractor over one database connection.

The run is all-or-nothing. Extractors run sequentially in
:data:`EXTRACTION_ORDER` and the first hard error aborts the run, so callers
never receive a partial secret set.
"""

import logging
import threading
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from octoterra_secrets.exceptions import (
    ExtractionError,
    OperationCancelledError,
    SecretsMigrationError,
)
from octoterra_secrets.extraction.database import create_source_engine, ping_database
from octoterra_secrets.extraction.extractors import ExtractionContext, extract_records
from octoterra_secrets.extraction.models import (
    EXTRACTION_ORDER,
    DatabaseConnectionConfig,
    EntityKind,
    ExtractionOptions,
    ExtractionResult,
)
from octoterra_secrets.extraction.serialize import render_variable_file

logger = logging.getLogger(__name__)


class ExtractionCoordinator:
    """Runs the entity extractors and concatenates their output.

    Args:
        engine: SQLAlchemy engine for the source database
        master_key: Base64 encoded master key (held only for this run)
        options: Extraction settings, including the reserved output name
        cancel_event: Optional event checked between extractors
    """

    def __init__(
        self,
        engine: Engine,
        master_key: str,
        options: Optional[ExtractionOptions] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.engine = engine
        self._master_key = master_key
        self.options = options or ExtractionOptions()
        self.cancel_event = cancel_event

    def __repr__(self) -> str:
        return f"ExtractionCoordinator(engine={self.engine!r}, options={self.options!r})"

    def _check_cancelled(self, next_kind: EntityKind) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelledError(
                "Extraction cancelled",
                details={"next_entity_kind": next_kind.value},
            )

    def run(self) -> ExtractionResult:
        """Extract every sensitive value and render the variable file.

        Raises:
            ExtractionError: If any extractor fails; carries the entity kind
            OperationCancelledError: If the cancel event is set mid run
        """
        result = ExtractionResult()
        file_parts = []

        with self.engine.connect() as connection:
            context = ExtractionContext(
                connection=connection,
                master_key=self._master_key,
                options=self.options,
            )

            for kind in EXTRACTION_ORDER:
                self._check_cancelled(kind)

                try:
                    records = extract_records(kind, context)
                except ExtractionError:
                    raise
                except (SecretsMigrationError, SQLAlchemyError) as e:
                    raise ExtractionError(
                        kind.value,
                        message=f"Failed to extract {kind.value} values: {e}",
                        details=getattr(e, "details", None),
                    ) from e

                file_parts.append(render_variable_file(records))
                result.counts[kind.value] = len(records)
                result.names.extend(record.name for record in records)

        result.variable_file = "".join(file_parts)
        logger.info(f"Extraction complete: {result.summary()}")
        return result


def extract_variables(
    db_config: DatabaseConnectionConfig,
    master_key: str,
    options: Optional[ExtractionOptions] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ExtractionResult:
    """Connect to the source database, extract every secret and disconnect.

    The connection is validated with a short timeout before the run starts.

    Raises:
        ConnectivityError: If the database cannot be reached
        ExtractionError: If any extractor fails
    """
    engine = create_source_engine(db_config)
    try:
        ping_database(engine)
        coordinator = ExtractionCoordinator(
            engine, master_key, options=options, cancel_event=cancel_event
        )
        return coordinator.run()
    finally:
        engine.dispose()
