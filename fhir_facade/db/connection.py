"""
Database connection module for the IRIS FHIR repository.

Connection settings come from environment variables, defaulting to a local
Docker IRIS instance.
"""

import os

import iris


class DatabaseConnection:
    """
    IRIS database connection manager with environment-based configuration.

    Environment Variables:
        IRIS_HOST: Database hostname (default: localhost)
        IRIS_PORT: Database port (default: 32782)
        IRIS_NAMESPACE: FHIR repository namespace (default: DEMO)
        IRIS_USERNAME: Database username (default: _SYSTEM)
        IRIS_PASSWORD: Database password (default: ISCDEMO)
    """

    DEFAULT_CONFIG = {
        'hostname': 'localhost',
        'port': 32782,
        'namespace': 'DEMO',
        'username': '_SYSTEM',
        'password': 'ISCDEMO'
    }

    @classmethod
    def get_config(cls, **overrides) -> dict:
        """
        Get connection parameters from environment variables with defaults.

        Args:
            **overrides: Explicit values taking precedence over the environment

        Returns:
            dict: IRIS connection parameters
        """
        config = {
            'hostname': os.getenv('IRIS_HOST', cls.DEFAULT_CONFIG['hostname']),
            'port': int(os.getenv('IRIS_PORT', cls.DEFAULT_CONFIG['port'])),
            'namespace': os.getenv('IRIS_NAMESPACE', cls.DEFAULT_CONFIG['namespace']),
            'username': os.getenv('IRIS_USERNAME', cls.DEFAULT_CONFIG['username']),
            'password': os.getenv('IRIS_PASSWORD', cls.DEFAULT_CONFIG['password'])
        }
        config.update({key: value for key, value in overrides.items() if value is not None})
        return config

    @classmethod
    def get_connection(cls, **overrides):
        """
        Create IRIS database connection.

        Returns:
            DBAPI connection object

        Raises:
            ConnectionError: If the connection cannot be established
        """
        config = cls.get_config(**overrides)
        try:
            return iris.connect(**config)
        except Exception as e:
            raise ConnectionError(
                f"Failed to connect to IRIS at {config['hostname']}:{config['port']}/{config['namespace']}. "
                f"Error: {str(e)}"
            ) from e

    @classmethod
    def get_info(cls) -> str:
        """Human-readable connection target, without credentials."""
        config = cls.get_config()
        return f"IRIS @ {config['hostname']}:{config['port']}/{config['namespace']}"


def get_connection(**overrides):
    """
    Create IRIS database connection.

    Convenience wrapper around DatabaseConnection.get_connection().
    """
    return DatabaseConnection.get_connection(**overrides)
