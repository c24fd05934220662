import os
from dotenv import load_dotenv
import os.path

# Load environment variables from the .env file in the project root
dotenv_path = os.path.join(os.path.dirname(__file__), '..', '.env')
load_dotenv(dotenv_path=dotenv_path)

# --- Source Octopus database (SQL Server) ---
OCTOPUS_DB_SERVER = os.environ.get('OCTOPUS_DB_SERVER')
OCTOPUS_DB_PORT = os.environ.get('OCTOPUS_DB_PORT', '1433')
OCTOPUS_DB_NAME = os.environ.get('OCTOPUS_DB_NAME', 'Octopus')
OCTOPUS_DB_USER = os.environ.get('OCTOPUS_DB_USER')
OCTOPUS_DB_PASSWORD = os.environ.get('OCTOPUS_DB_PASSWORD')

# Base64 master key used by the source server to encrypt sensitive values at rest
OCTOPUS_MASTER_KEY = os.environ.get('OCTOPUS_MASTER_KEY')

# --- Destination Octopus server ---
OCTOPUS_DESTINATION_SERVER = os.environ.get('OCTOPUS_DESTINATION_SERVER')
OCTOPUS_DESTINATION_API_KEY = os.environ.get('OCTOPUS_DESTINATION_API_KEY')
OCTOPUS_DESTINATION_SPACE = os.environ.get('OCTOPUS_DESTINATION_SPACE', 'Spaces-1')

# --- Timeouts (seconds) ---
DB_LOGIN_TIMEOUT = int(os.environ.get('OCTOPUS_DB_LOGIN_TIMEOUT', 10))
DB_QUERY_TIMEOUT = int(os.environ.get('OCTOPUS_DB_QUERY_TIMEOUT', 60))
API_TIMEOUT = int(os.environ.get('OCTOPUS_API_TIMEOUT', 30))

# --- Reserved names ---
# Defaults only: components receive these as constructor arguments.
SECRETS_LIBRARY_VARIABLE_SET_NAME = os.environ.get(
    'SECRETS_LIBRARY_VARIABLE_SET_NAME', 'SpaceSensitiveVars')
SECRETS_VARIABLE_NAME = os.environ.get(
    'SECRETS_VARIABLE_NAME', 'OctoterraWiz.Terraform.Vars')
