from dagster import In, OpExecutionContext, Out, in_process_executor, job, mem_io_manager, op

from ..extraction import ExtractionResult
from ..resources import OctopusServerResource, SourceDatabaseResource


@op(
    out=Out(ExtractionResult, description="Terraform variable file with per kind counts"),
    description="Extract and decrypt every sensitive value from the source database",
)
def extract_sensitive_values(
    context: OpExecutionContext,
    source_database: SourceDatabaseResource,
) -> ExtractionResult:
    result = source_database.extract()
    for kind, count in result.counts.items():
        context.log.info(f"{kind}: {count} sensitive values")
    context.log.info(f"Extracted {result.summary()}")
    return result


@op(
    ins={"extraction": In(ExtractionResult)},
    description="Publish the extracted variable file as one sensitive variable",
)
def publish_sensitive_values(
    context: OpExecutionContext,
    octopus_server: OctopusServerResource,
    extraction: ExtractionResult,
) -> None:
    octopus_server.get_publisher().publish(extraction.variable_file)
    context.log.info(
        f"Published {extraction.total} values to "
        f"{octopus_server.container_name}/{octopus_server.variable_name}"
    )


@op(description="Spread scoped sensitive variables in every library variable set")
def spread_sensitive_variables(
    context: OpExecutionContext,
    octopus_server: OctopusServerResource,
) -> int:
    results = octopus_server.get_spreader().spread_all()
    for result in results:
        context.log.info(f"Renamed {result.original_name} to {result.unique_name}")
    context.log.info(f"Spread {len(results)} sensitive variables")
    return len(results)


# Decrypted values stay in memory: the output of the extract op is never persisted
@job(
    resource_defs={"io_manager": mem_io_manager},
    executor_def=in_process_executor,
    description="Extract sensitive values from the source database and publish them",
)
def extract_secrets_job():
    publish_sensitive_values(extract_sensitive_values())


@job(description="Spread scoped sensitive variables on the destination server")
def spread_variables_job():
    spread_sensitive_variables()
