# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the platform's business logic:
# - models/: Pydantic schemas for request bodies and results
# - services/: One static-method service class per feature area
# - validation/: Pure rules (emails, roles, scores, tokens, hackathon state)
#
# Services talk to Supabase through lib.supabase_client and raise the
# domain exceptions from app.exceptions; they never touch Request objects.
# =============================================================================
