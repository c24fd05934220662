from dagster import Definitions, EnvVar

from .config import OCTOPUS_DB_NAME, OCTOPUS_DB_PORT, OCTOPUS_DESTINATION_SPACE
from .jobs.secrets import extract_secrets_job, spread_variables_job
from .resources import OctopusServerResource, SourceDatabaseResource

source_database = SourceDatabaseResource(
    server=EnvVar("OCTOPUS_DB_SERVER"),
    port=int(OCTOPUS_DB_PORT),
    database=OCTOPUS_DB_NAME,
    user=EnvVar("OCTOPUS_DB_USER"),
    password=EnvVar("OCTOPUS_DB_PASSWORD"),
    master_key=EnvVar("OCTOPUS_MASTER_KEY"),
)

octopus_server = OctopusServerResource(
    server=EnvVar("OCTOPUS_DESTINATION_SERVER"),
    api_key=EnvVar("OCTOPUS_DESTINATION_API_KEY"),
    space_id=OCTOPUS_DESTINATION_SPACE,
)

defs = Definitions(
    jobs=[
        extract_secrets_job,
        spread_variables_job,
    ],
    resources={
        "source_database": source_database,
        "octopus_server": octopus_server,
    },
)
