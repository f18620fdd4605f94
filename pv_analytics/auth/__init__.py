"""
Bearer-token client authentication (see ``bearer``).
"""

from pv_analytics.auth.bearer import BearerAuth, parse_api_tokens, verify_bearer_token

__all__ = ["BearerAuth", "parse_api_tokens", "verify_bearer_token"]
