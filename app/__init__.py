# =============================================================================
# app/ - HTTP Layer for the Maximally Platform API
# =============================================================================
# main.py wires the routers, CORS and the JSON error envelope. config.py holds
# the pydantic-settings object every module reads from. auth/ resolves Supabase
# JWTs and judge scoring links into callers, and dependencies.py adds the rate
# limit and cron-secret guards.
#
# Routers only parse requests and shape responses. Rules and persistence live
# in core/services.
# =============================================================================
