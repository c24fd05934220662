from setuptools import find_packages, setup

setup(
    name="octoterra_secrets",
    version="0.1.0",
    packages=find_packages(exclude=["octoterra_secrets_tests", "octoterra_secrets_tests.*"]),
    install_requires=[
        "dagster",
        "cryptography",
        "pydantic>=2",
        "pymssql",
        "python-dotenv",
        "requests",
        "sqlalchemy>=2",
        "tenacity>=8",
    ],
    extras_require={"dev": ["dagster-webserver", "pytest"]},
)
