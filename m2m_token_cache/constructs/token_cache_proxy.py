"""
Token Cache Proxy Construct

Creates an API Gateway REST API with a response cache in front of a Cognito
OAuth2 token endpoint, so client credentials (M2M) token requests are
answered from the cache instead of being re-issued by Cognito.
"""

import logging
from dataclasses import dataclass

from aws_cdk import (
    Duration,
    aws_apigateway as apigw,
    aws_certificatemanager as acm,
    aws_route53 as route53,
)
from constructs import Construct

from m2m_token_cache.cache_policy import (
    DEFAULT_CACHE_CLUSTER_SIZE,
    TOKEN_HTTP_METHOD,
    TOKEN_RESOURCE_PATH,
    is_valid_cache_cluster_size,
    resolve_cache_key_policy,
    resolve_name_prefix,
    rest_api_name,
)

logger = logging.getLogger(__name__)

REST_API_DESCRIPTION = "API Gateway proxy with cache for m2m tokens for Cognito pool"


@dataclass(frozen=True)
class CustomDomain:
    """
    Custom domain for the cache proxy.

    Attributes:
        domain_name: Root domain, e.g. ``example.com``
        sub_domain: Sub domain label, e.g. ``auth``. The proxy is served from
            ``{sub_domain}.{domain_name}`` and a CNAME record is created for it.
        certificate: ACM certificate valid for ``{sub_domain}.{domain_name}``.
            Edge endpoints need it in ``us-east-1``.
        hosted_zone: Route 53 zone for ``domain_name``
    """

    domain_name: str
    sub_domain: str
    certificate: acm.ICertificate
    hosted_zone: route53.IHostedZone

    @property
    def fqdn(self) -> str:
        return f"{self.sub_domain}.{self.domain_name}"


class CognitoM2MTokenCacheProxy(Construct):
    """
    API Gateway caching proxy for a Cognito token endpoint.

    Creates:
        - REST API with a stage-level cache cluster
        - POST /oauth2/token with an HTTP proxy integration to Cognito
        - Request validator enforcing the Authorization header (optional)
        - Custom domain name and CNAME record (optional)
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        stage: str,
        cognito_token_endpoint_url: str,
        cache_ttl: Duration,
        cache_size: str = DEFAULT_CACHE_CLUSTER_SIZE,
        name_prefix: str | None = None,
        custom_domain: CustomDomain | None = None,
        disable_authorization_header_validation: bool = False,
    ) -> None:
        super().__init__(scope, construct_id)

        self._custom_domain = custom_domain
        prefix = resolve_name_prefix(name_prefix)

        if not is_valid_cache_cluster_size(cache_size):
            # CloudFormation rejects it on deploy
            logger.warning(
                f"Cache cluster size {cache_size!r} is not a known API Gateway tier"
            )

        self.cache_key_policy = resolve_cache_key_policy(
            disable_authorization_header_validation
        )

        # REST API and stage with cache cluster
        self.rest_api = apigw.RestApi(
            self,
            f"{prefix}CognitoProxyApi-{stage}",
            rest_api_name=rest_api_name(stage, name_prefix),
            description=REST_API_DESCRIPTION,
            deploy_options=apigw.StageOptions(
                stage_name=stage,
                cache_cluster_enabled=True,
                cache_cluster_size=cache_size,
                method_options={
                    f"{TOKEN_RESOURCE_PATH}/{TOKEN_HTTP_METHOD}": apigw.MethodDeploymentOptions(
                        caching_enabled=True,
                        cache_ttl=cache_ttl,
                        cache_data_encrypted=True,
                    )
                },
            ),
        )

        # Request Validator (parameters only, never the body)
        self.request_validator: apigw.RequestValidator | None = None
        if self.cache_key_policy.requires_validator:
            self.request_validator = apigw.RequestValidator(
                self,
                f"{prefix}TokenRequestValidator-{stage}",
                rest_api=self.rest_api,
                request_validator_name=f"{prefix}TokenRequestValidator-{stage}",
                validate_request_parameters=True,
                validate_request_body=False,
            )

        # POST /oauth2/token -> Cognito
        integration = apigw.HttpIntegration(
            cognito_token_endpoint_url,
            http_method=TOKEN_HTTP_METHOD,
            proxy=True,
            options=apigw.IntegrationOptions(
                request_parameters=self.cache_key_policy.integration_request_parameters,
                cache_key_parameters=self.cache_key_policy.cache_key_parameters,
            ),
        )

        token_resource = self.rest_api.root.add_resource("oauth2").add_resource("token")
        self.token_method = token_resource.add_method(
            TOKEN_HTTP_METHOD,
            integration,
            authorization_type=apigw.AuthorizationType.NONE,
            request_parameters=self.cache_key_policy.method_request_parameters,
            request_validator=self.request_validator,
        )

        # Custom Domain
        self.domain: apigw.DomainName | None = None
        self.cname_record: route53.CnameRecord | None = None
        if custom_domain is not None:
            logger.debug(f"Mapping {custom_domain.fqdn} to {rest_api_name(stage, name_prefix)}")
            self.domain = self.rest_api.add_domain_name(
                f"{prefix}CustomDomain-{stage}",
                domain_name=custom_domain.fqdn,
                certificate=custom_domain.certificate,
                endpoint_type=apigw.EndpointType.EDGE,
            )
            self.cname_record = route53.CnameRecord(
                self,
                f"{prefix}CustomDomainCnameRecord-{stage}",
                zone=custom_domain.hosted_zone,
                record_name=custom_domain.sub_domain,
                domain_name=self.domain.domain_name_alias_domain_name,
            )

    @property
    def token_url(self) -> str:
        """Token URL served through the cache."""
        if self._custom_domain is not None:
            return f"https://{self._custom_domain.fqdn}{TOKEN_RESOURCE_PATH}"
        return self.rest_api.url_for_path(TOKEN_RESOURCE_PATH)
