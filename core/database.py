"""
Supabase access for Lishka Upload Service.

The upload flow only reads the ``profiles`` table back after a successful
upload, so one lazily created service-role client is shared by the process.
"""

import time
from typing import Optional
from supabase import create_client, Client
from core.config import get_database_config, get_settings
from core.logging import LoggerMixin
from core.exceptions import DatabaseException


class DatabaseManager(LoggerMixin):
    """Process-wide owner of the Supabase client used to read user profiles."""

    _instance: Optional['DatabaseManager'] = None
    _client: Optional[Client] = None

    def __new__(cls) -> 'DatabaseManager':
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, '_initialized'):
            self._initialized = True
            self._client = None
            self.last_error: Optional[str] = None

    @property
    def client(self) -> Client:
        """Supabase client, created on first use."""
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> Client:
        config = get_database_config()

        if not config.get("url") or not config.get("service_role_key"):
            self.last_error = "Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY"
            raise DatabaseException(
                "Missing required database configuration",
                operation="client_initialization"
            )

        try:
            client = create_client(config["url"], config["service_role_key"])
        except Exception as e:
            self.last_error = str(e)
            self.logger.error(f"Failed to initialize database client: {e}")
            raise DatabaseException("Failed to initialize database client", operation="client_initialization") from e

        self.logger.info(f"Database client initialized for {config['url']}")
        return client

    def test_connection(self) -> bool:
        """
        Run a one-row query against the profiles table.

        Returns:
            True if the query succeeded, False otherwise
        """
        try:
            self.client.table(get_settings().profiles_table).select("id").limit(1).execute()
        except Exception as e:
            self.last_error = str(e)
            self.logger.error(f"Database connection test failed: {e}")
            return False

        self.last_error = None
        return True

    def health_check(self) -> dict:
        """
        Check that the profile store answers.

        Returns:
            Health check results, including query latency
        """
        started = time.perf_counter()
        is_connected = self.test_connection()
        latency_ms = round((time.perf_counter() - started) * 1000, 1)

        result = {
            "status": "healthy" if is_connected else "unhealthy",
            "connected": is_connected,
            "client_initialized": self._client is not None,
            "table": get_settings().profiles_table,
        }
        if is_connected:
            result["latency_ms"] = latency_ms
        else:
            result["error"] = self.last_error
        return result

    def close(self) -> None:
        """Drop the cached client; the next access creates a new one."""
        if self._client is not None:
            self._client = None
            self.logger.info("Database client released")


# Global database manager instance
db_manager = DatabaseManager()
