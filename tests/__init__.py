# =============================================================================
# tests/ - Test Suite
# =============================================================================
# Unit tests for validation rules and services (against an in-memory
# Supabase fake in fakes.py) and route tests through FastAPI's TestClient.
#
# Run tests with: pytest
# =============================================================================
