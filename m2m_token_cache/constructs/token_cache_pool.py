"""
Cognito User Pool with Token Cache Construct

Creates a Cognito User Pool and hosted domain, then puts a
CognitoM2MTokenCacheProxy in front of the domain's token endpoint.
"""

import logging
from collections.abc import Mapping
from typing import Any

from aws_cdk import (
    Duration,
    Stack,
    aws_cognito as cognito,
)
from constructs import Construct

from m2m_token_cache.cache_policy import (
    DEFAULT_CACHE_CLUSTER_SIZE,
    resource_name,
    token_domain_prefix,
    token_endpoint_url,
)
from m2m_token_cache.constructs.token_cache_proxy import (
    CognitoM2MTokenCacheProxy,
    CustomDomain,
)

logger = logging.getLogger(__name__)


class CognitoM2MWithTokenCache(Construct):
    """
    Cognito User Pool whose token endpoint is fronted by an API Gateway cache.

    Creates:
        - User Pool named ``{prefix-}CognitoUserPool-{stage}``
        - User Pool Domain ``{prefix|default}-token-cache-{stage}``
        - CognitoM2MTokenCacheProxy targeting the domain's /oauth2/token
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        stage: str,
        cache_ttl: Duration,
        cache_size: str = DEFAULT_CACHE_CLUSTER_SIZE,
        name_prefix: str | None = None,
        user_pool_props: Mapping[str, Any] | None = None,
        custom_cache_api_domain: CustomDomain | None = None,
        disable_authorization_header_validation: bool = False,
    ) -> None:
        super().__init__(scope, construct_id)

        self._stage = stage
        self._name_prefix = name_prefix

        # User Pool (caller props may override anything but the name)
        user_pool_name = resource_name("CognitoUserPool", stage, name_prefix)
        pool_kwargs = dict(user_pool_props or {})
        if pool_kwargs.pop("user_pool_name", None) is not None:
            logger.warning(f"Ignoring user_pool_name override; using {user_pool_name}")

        self.user_pool = cognito.UserPool(
            self,
            user_pool_name,
            user_pool_name=user_pool_name,
            **pool_kwargs,
        )

        # User Pool Domain for the token endpoint
        self.user_pool_domain = cognito.UserPoolDomain(
            self,
            resource_name("CognitoUserPoolDomain", stage, name_prefix),
            user_pool=self.user_pool,
            cognito_domain=cognito.CognitoDomainOptions(
                domain_prefix=token_domain_prefix(stage, name_prefix)
            ),
        )

        region = Stack.of(self).region
        self.cognito_token_endpoint_url = token_endpoint_url(
            self.user_pool_domain.domain_name, region
        )

        # Token cache proxy
        self.token_cache_proxy = CognitoM2MTokenCacheProxy(
            self,
            resource_name("ApiGatewayProxy", stage, name_prefix),
            stage=stage,
            cognito_token_endpoint_url=self.cognito_token_endpoint_url,
            cache_ttl=cache_ttl,
            cache_size=cache_size,
            name_prefix=name_prefix,
            custom_domain=custom_cache_api_domain,
            disable_authorization_header_validation=disable_authorization_header_validation,
        )

    def add_machine_client(
        self,
        client_name: str,
        resource_server_id: str,
        scope_name: str = "invoke",
    ) -> cognito.CfnUserPoolClient:
        """
        Add a resource server and a client credentials app client.

        Args:
            client_name: App client name
            resource_server_id: Resource server identifier, also the scope prefix
            scope_name: Scope granted to the client

        Returns:
            The machine client; its ``ref`` is the client ID
        """
        resource_server = cognito.CfnUserPoolResourceServer(
            self,
            resource_name("ResourceServer", self._stage, self._name_prefix),
            user_pool_id=self.user_pool.user_pool_id,
            identifier=resource_server_id,
            name=f"{resource_server_id} Resource Server",
            scopes=[
                cognito.CfnUserPoolResourceServer.ResourceServerScopeTypeProperty(
                    scope_name=scope_name,
                    scope_description="Machine to machine access",
                )
            ],
        )

        machine_client = cognito.CfnUserPoolClient(
            self,
            resource_name("MachineClient", self._stage, self._name_prefix),
            client_name=client_name,
            user_pool_id=self.user_pool.user_pool_id,
            generate_secret=True,
            allowed_o_auth_flows=["client_credentials"],
            allowed_o_auth_flows_user_pool_client=True,
            allowed_o_auth_scopes=[f"{resource_server_id}/{scope_name}"],
            supported_identity_providers=["COGNITO"],
        )
        machine_client.add_dependency(resource_server)
        return machine_client

    @property
    def token_url(self) -> str:
        """Token URL served through the cache proxy."""
        return self.token_cache_proxy.token_url
