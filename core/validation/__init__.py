# =============================================================================
# core/validation/ - Pure Business Rules
# =============================================================================
# Side-effect free checks shared by services and tests:
# - email.py: format and disposable-domain checks
# - scoring.py: judging rubric validation and aggregation
# - judge_token.py: judge scoring link tokens
# - hackathon_state.py: draft/live/ended lifecycle
# - roles.py: profile role whitelist
# =============================================================================
