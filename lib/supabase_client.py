# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides the lookups every router needs:
# - Single-row fetches that turn "no rows" into None
# - Profiles and the admin role check
# - Hackathon ownership checks for organizer endpoints
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   profile = SupabaseClient.fetch_profile(user_id)
# =============================================================================

from __future__ import annotations

import logging
import re
from typing import Any, Iterable
from uuid import UUID

from supabase import create_client, Client

from app.config import settings

# Set up logging for this module
logger = logging.getLogger(__name__)

# Dropped from search terms: or() grouping and quoting, LIKE wildcards
_FILTER_RESERVED = re.compile(r"""[,()"\\*%]""")


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Carries a code and an actionable suggestion so callers can log it
    without inspecting the PostgREST payload.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        profile = SupabaseClient.fetch_profile(user.id)
        if SupabaseClient.is_admin(user.id):
            ...
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).
        Authorization is enforced by the API before any query runs.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    # -------------------------------------------------------------------------
    # Generic Row Access
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_row(
        cls,
        table: str,
        column: str,
        value: Any,
        columns: str = "*",
    ) -> dict[str, Any] | None:
        """
        Fetch exactly one row where `column == value`.

        Returns:
            Row dict, or None if no row matched

        Raises:
            SupabaseClientError: If the query fails for any other reason
        """
        client = cls.get_client()
        if isinstance(value, UUID):
            value = cls._normalize_uuid(value)

        try:
            response = (
                client.table(table)
                .select(columns)
                .eq(column, value)
                .single()
                .execute()
            )
            return response.data

        except Exception as e:
            if "PGRST116" in str(e):  # PostgREST code for no rows
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code="FETCH_ROW_FAILED",
                suggestion=f"Check that the {table} table is accessible",
                details={"table": table, "column": column, "value": str(value)}
            )

    @classmethod
    def fetch_by_ids(
        cls,
        table: str,
        ids: Iterable[Any],
        columns: str = "*",
        key: str = "id",
    ) -> dict[str, dict[str, Any]]:
        """
        Fetch many rows by key in one round trip.

        Returns:
            Mapping of str(key value) -> row (missing ids are absent)
        """
        wanted = sorted({str(i) for i in ids if i is not None})
        if not wanted:
            return {}

        client = cls.get_client()
        try:
            response = client.table(table).select(columns).in_(key, wanted).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code="FETCH_ROWS_FAILED",
                details={"table": table, "count": len(wanted)}
            )
        return {str(row[key]): row for row in (response.data or [])}

    @staticmethod
    def search_filter(term: str, columns: Iterable[str]) -> str | None:
        """
        Build a PostgREST or() filter matching term in any of columns.

        The term is double-quoted so dots and colons survive; separators,
        grouping, quotes and wildcards are dropped. Returns None when
        nothing searchable is left.

        Example:
            SupabaseClient.search_filter("ai (beta)", ("name", "tagline"))
            # 'name.ilike."%ai beta%",tagline.ilike."%ai beta%"'
        """
        cleaned = " ".join(_FILTER_RESERVED.sub(" ", term or "").split())
        if not cleaned:
            return None
        return ",".join(f'{column}.ilike."%{cleaned}%"' for column in columns)

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_profile(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """Fetch a row from public.profiles."""
        return cls.fetch_row("profiles", "id", cls._normalize_uuid(user_id))

    @classmethod
    def is_admin(cls, user_id: str | UUID) -> bool:
        """
        Check the `role` column of the caller's profile.

        A missing profile is not an admin.
        """
        profile = cls.fetch_row("profiles", "id", cls._normalize_uuid(user_id), columns="id, role")
        return bool(profile) and profile.get("role") == "admin"

    # -------------------------------------------------------------------------
    # Hackathons
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_hackathon(cls, hackathon_id: int | str) -> dict[str, Any] | None:
        """Fetch an organizer hackathon by id."""
        return cls.fetch_row("organizer_hackathons", "id", hackathon_id)

    @classmethod
    def is_hackathon_organizer(cls, hackathon_id: int | str, user_id: str | UUID) -> bool:
        """True if `user_id` owns the hackathon."""
        hackathon = cls.fetch_row(
            "organizer_hackathons", "id", hackathon_id, columns="id, organizer_id"
        )
        return bool(hackathon) and str(hackathon.get("organizer_id")) == cls._normalize_uuid(user_id)
