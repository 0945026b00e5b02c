"""
Token Cache Stack

CDK stack for deploying a Cognito User Pool whose client credentials (M2M)
token endpoint is fronted by an API Gateway response cache:
- Cognito User Pool, hosted domain, resource server and machine client
- API Gateway REST API with cache cluster on POST /oauth2/token
- Optional custom domain with a Route 53 CNAME record

Configuration comes from TokenCacheSettings (environment variables / .env).
"""

import logging

from aws_cdk import (
    CfnOutput,
    Stack,
    Tags,
    aws_certificatemanager as acm,
    aws_route53 as route53,
)
from constructs import Construct

from m2m_token_cache.constructs.token_cache_pool import CognitoM2MWithTokenCache
from m2m_token_cache.constructs.token_cache_proxy import CustomDomain
from m2m_token_cache.settings import TokenCacheSettings

logger = logging.getLogger(__name__)


class TokenCacheStack(Stack):
    """
    CDK Stack for the Cognito M2M token cache.

    Creates:
        - Cognito User Pool with domain and machine client
        - API Gateway caching proxy for the token endpoint
        - Custom domain and CNAME record (when configured)
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        settings: TokenCacheSettings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.settings = settings

        # =====================================================================
        # CUSTOM DOMAIN (certificate and hosted zone are referenced, not created)
        # =====================================================================

        custom_domain = self._lookup_custom_domain()

        # =====================================================================
        # COGNITO + TOKEN CACHE
        # =====================================================================

        self.token_cache = CognitoM2MWithTokenCache(
            self,
            "TokenCache",
            stage=settings.stage,
            cache_ttl=settings.cache_ttl,
            cache_size=settings.cache_size,
            name_prefix=settings.name_prefix,
            custom_cache_api_domain=custom_domain,
            disable_authorization_header_validation=settings.disable_authorization_header_validation,
        )

        self.machine_client = self.token_cache.add_machine_client(
            client_name=f"{self.stack_name}-machine-client",
            resource_server_id=settings.resource_server_id,
            scope_name=settings.oauth_scope_name,
        )

        self._apply_tags()
        self._create_outputs()

    def _lookup_custom_domain(self) -> CustomDomain | None:
        settings = self.settings
        if not settings.has_custom_domain:
            return None

        logger.info(
            f"Serving token cache from {settings.custom_sub_domain}.{settings.custom_domain_name}"
        )
        certificate = acm.Certificate.from_certificate_arn(
            self, "CustomDomainCertificate", settings.certificate_arn
        )
        hosted_zone = route53.HostedZone.from_hosted_zone_attributes(
            self,
            "CustomDomainHostedZone",
            hosted_zone_id=settings.hosted_zone_id,
            zone_name=settings.custom_domain_name,
        )
        return CustomDomain(
            domain_name=settings.custom_domain_name,
            sub_domain=settings.custom_sub_domain,
            certificate=certificate,
            hosted_zone=hosted_zone,
        )

    def _apply_tags(self):
        """Apply standard tags to all resources in the stack."""
        Tags.of(self).add("Application", "cognito-m2m-token-cache")
        Tags.of(self).add("ManagedBy", "CDK")
        Tags.of(self).add("Stage", self.settings.stage)

    def _create_outputs(self):
        CfnOutput(
            self,
            "UserPoolId",
            description="Cognito User Pool ID",
            value=self.token_cache.user_pool.user_pool_id,
            export_name=f"{self.stack_name}-UserPoolId",
        )

        CfnOutput(
            self,
            "MachineClientId",
            description="Cognito Machine Client ID",
            value=self.machine_client.ref,
            export_name=f"{self.stack_name}-MachineClientId",
        )

        CfnOutput(
            self,
            "CognitoTokenUrl",
            description="Cognito token endpoint (uncached)",
            value=self.token_cache.cognito_token_endpoint_url,
        )

        CfnOutput(
            self,
            "CacheProxyTokenUrl",
            description="Token endpoint served through the API Gateway cache",
            value=self.token_cache.token_url,
            export_name=f"{self.stack_name}-CacheProxyTokenUrl",
        )

        CfnOutput(
            self,
            "OAuthScope",
            description="OAuth2 scope of the machine client",
            value=self.settings.oauth_scope,
        )
