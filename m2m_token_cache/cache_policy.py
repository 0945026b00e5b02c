"""
Cache Key Policy

Decides which parts of a token request make up the API Gateway cache key
for the proxied Cognito token endpoint, and whether the Authorization
header is enforced by a request validator.

API Gateway can only key its cache on headers and query string parameters.
The request body (form-encoded client credentials) is therefore copied into
a synthetic integration query string parameter, ``bodyCacheKey``, which is
listed as a cache key. Cognito ignores the extra query parameter.

Nothing here touches CDK, so the policy can be checked without synthesizing.
"""

from dataclasses import dataclass

# API Gateway cache cluster capacity tiers (GB)
CACHE_CLUSTER_SIZES: tuple[str, ...] = (
    "0.5",
    "1.6",
    "6.1",
    "13.5",
    "28.4",
    "58.2",
    "118",
    "237",
)
DEFAULT_CACHE_CLUSTER_SIZE = "0.5"

TOKEN_RESOURCE_PATH = "/oauth2/token"
TOKEN_HTTP_METHOD = "POST"

AUTHORIZATION_HEADER = "Authorization"
CACHE_KEY_HEADERS: tuple[str, ...] = (AUTHORIZATION_HEADER, "Content-Type")
CACHE_KEY_QUERY_PARAMETERS: tuple[str, ...] = (
    "scope",
    "grant_type",
    "client_secret",
    "client_id",
)

BODY_CACHE_KEY = "bodyCacheKey"
METHOD_REQUEST_BODY = "method.request.body"


def method_header(name: str) -> str:
    return f"method.request.header.{name}"


def method_querystring(name: str) -> str:
    return f"method.request.querystring.{name}"


def _integration_parameter(method_parameter: str) -> str:
    return method_parameter.replace("method.request.", "integration.request.", 1)


BODY_CACHE_KEY_PARAMETER = f"integration.request.querystring.{BODY_CACHE_KEY}"


@dataclass(frozen=True)
class CacheKeyPolicy:
    """
    Cache key and request validation policy for the token method.

    The shape is fixed; only whether the Authorization header is required
    varies.
    """

    require_authorization_header: bool = True

    @property
    def method_parameters(self) -> list[str]:
        """Method request parameters, headers first, in cache key order."""
        return [method_header(h) for h in CACHE_KEY_HEADERS] + [
            method_querystring(q) for q in CACHE_KEY_QUERY_PARAMETERS
        ]

    @property
    def method_request_parameters(self) -> dict[str, bool]:
        """Method request parameters mapped to their required flag."""
        authorization = method_header(AUTHORIZATION_HEADER)
        return {
            name: (name == authorization and self.require_authorization_header)
            for name in self.method_parameters
        }

    @property
    def integration_request_parameters(self) -> dict[str, str]:
        """Integration parameters, each sourced from its method parameter."""
        mapping = {
            _integration_parameter(name): name for name in self.method_parameters
        }
        mapping[BODY_CACHE_KEY_PARAMETER] = METHOD_REQUEST_BODY
        return mapping

    @property
    def cache_key_parameters(self) -> list[str]:
        return self.method_parameters + [BODY_CACHE_KEY_PARAMETER]

    @property
    def requires_validator(self) -> bool:
        return self.require_authorization_header


def resolve_cache_key_policy(
    disable_authorization_header_validation: bool = False,
) -> CacheKeyPolicy:
    """Build the cache key policy for the given validation setting."""
    return CacheKeyPolicy(
        require_authorization_header=not disable_authorization_header_validation
    )


def is_valid_cache_cluster_size(cache_size: str) -> bool:
    return cache_size in CACHE_CLUSTER_SIZES


# =============================================================================
# RESOURCE NAMING
# =============================================================================


def resolve_name_prefix(name_prefix: str | None = None) -> str:
    """Return ``"{name_prefix}-"``, or an empty string when no prefix is set."""
    return f"{name_prefix}-" if name_prefix else ""


def resource_name(base: str, stage: str, name_prefix: str | None = None) -> str:
    """
    Build a resource name as ``{prefix-}{base}-{stage}``.

    The stage is used verbatim; it must already be valid for the target
    naming scheme.
    """
    return f"{resolve_name_prefix(name_prefix)}{base}-{stage}"


def rest_api_name(stage: str, name_prefix: str | None = None) -> str:
    return f"{resolve_name_prefix(name_prefix)}Cognito Proxy ({stage})"


def token_domain_prefix(stage: str, name_prefix: str | None = None) -> str:
    """Cognito hosted domain prefix, lowercased: ``{prefix}-token-cache-{stage}``."""
    return f"{(name_prefix or 'default').lower()}-token-cache-{stage.lower()}"


def token_endpoint_url(domain_prefix: str, region: str) -> str:
    """Token endpoint of a Cognito hosted domain."""
    return f"https://{domain_prefix}.auth.{region}.amazoncognito.com{TOKEN_RESOURCE_PATH}"
