from __future__ import annotations

from typing import Callable

from uploadsign.config.backend_config import BackendConfig, load_backend_config, require_env
from uploadsign.credentials.models import (
    Credential,
    PostPolicyAWS4Credential,
    PostPolicyCredential,
    PresignedPutCredential,
    TokenCredential,
)
from uploadsign.errors import ConfigurationError, CredentialIssuanceFailed
from uploadsign.keys.object_key import Clock, ObjectKeyGenerator, TokenFactory, normalize_extension, random_token, utc_now
from uploadsign.logging_config import get_logger, mask_key, with_context
from uploadsign.signing import canonical, engine
from uploadsign.signing.context import AWS4_ALGORITHM, BackendVariant, SigningContext

logger = get_logger(__name__)


def issue_presigned_put(context: SigningContext, object_key: str) -> PresignedPutCredential:
    request = canonical.build_presigned_request(context, object_key, method="PUT")
    signature = engine.sign(context, request)
    server_url = context.config.server_url
    return PresignedPutCredential(
        backend_kind=context.variant,
        server_url=server_url,
        presigned_url=request.url(signature),
        object_key=object_key,
        file_path=context.config.public_url(object_key, server_url),
    )


def issue_post_policy(context: SigningContext, object_key: str) -> PostPolicyCredential:
    config = context.config
    document = canonical.build_post_policy(context, object_key)
    server_url = config.endpoint or config.server_url
    return PostPolicyCredential(
        backend_kind=context.variant,
        server_url=server_url,
        access_key=config.access_key,
        policy=document.encode(),
        signature=engine.sign(context, document),
        object_key=object_key,
        file_path=config.public_url(object_key, server_url),
    )


def issue_post_policy_aws4(context: SigningContext, object_key: str) -> PostPolicyAWS4Credential:
    config = context.config
    document = canonical.build_post_policy(context, object_key, aws4=True)
    server_url = config.server_url
    return PostPolicyAWS4Credential(
        backend_kind=context.variant,
        server_url=server_url,
        algorithm=AWS4_ALGORITHM,
        amz_date=context.amz_date,
        amz_credential=context.credential,
        policy=document.encode(),
        signature=engine.sign(context, document),
        object_key=object_key,
        access_key=config.access_key,
        file_path=config.public_url(object_key, server_url),
        region=config.region,
    )


def issue_token(context: SigningContext, object_key: str) -> TokenCredential:
    config = context.config
    policy = canonical.build_upload_token_policy(context, object_key)
    server_url = config.endpoint or config.server_url
    return TokenCredential(
        backend_kind=context.variant,
        server_url=server_url,
        object_key=object_key,
        token=engine.sign(context, policy),
        file_path=config.public_url(object_key, server_url),
    )


_ISSUERS: dict[BackendVariant, Callable[[SigningContext, str], Credential]] = {
    BackendVariant.PRESIGNED_PUT: issue_presigned_put,
    BackendVariant.POST_POLICY: issue_post_policy,
    BackendVariant.POST_POLICY_AWS4: issue_post_policy_aws4,
    BackendVariant.TOKEN: issue_token,
}


def parse_variant(value: BackendVariant | str) -> BackendVariant:
    try:
        return BackendVariant(value)
    except ValueError as exc:
        known = ", ".join(v.value for v in BackendVariant)
        raise ConfigurationError(f"Unknown upload backend {value!r}; expected one of: {known}") from exc


class CredentialIssuer:
    """
    Issues short-lived upload credentials for one backend configuration.

    Holds only the immutable config, a clock and a token factory, so a single
    instance can serve any number of concurrent callers.
    """

    def __init__(self, config: BackendConfig, clock: Clock = utc_now, token_factory: TokenFactory = random_token) -> None:
        self.config = config
        self.clock = clock
        self.key_generator = ObjectKeyGenerator(clock=clock, token_factory=token_factory, date_format=config.date_format)

    def issue(self, variant: BackendVariant | str, extension: str | None = None) -> Credential:
        variant = parse_variant(variant)
        normalized_extension = normalize_extension(extension)
        log = with_context(logger, backend=variant.value, bucket=self.config.bucket)
        try:
            context = SigningContext(variant=variant, instant=self.clock(), config=self.config)
            object_key = self.key_generator.new_key(
                self.config.key_prefix, extension=normalized_extension, instant=context.instant
            )
            credential = _ISSUERS[variant](context, object_key)
        except Exception as exc:
            log.error("Credential issuance failed: error_type=%s", type(exc).__name__, exc_info=True)
            raise CredentialIssuanceFailed() from exc
        log.info(
            "Issued upload credential: object_key=%s access_key=%s expires_at=%s",
            credential.object_key,
            mask_key(self.config.access_key),
            context.expiration,
        )
        return credential


def load_backend_variant(env_prefix: str = "UPLOAD_") -> BackendVariant:
    return parse_variant(require_env(f"{env_prefix}BACKEND").strip())


def issuer_from_env(env_prefix: str = "UPLOAD_") -> tuple[CredentialIssuer, BackendVariant]:
    variant = load_backend_variant(env_prefix)
    config = load_backend_config(env_prefix)
    if variant in (BackendVariant.POST_POLICY, BackendVariant.TOKEN) and not config.endpoint:
        raise ConfigurationError(f"{env_prefix}ENDPOINT is required for the {variant.value} backend.")
    logger.info(
        "Loaded upload backend: backend=%s bucket=%s region=%s prefix=%s",
        variant.value,
        config.bucket,
        config.region,
        config.key_prefix or "-",
    )
    return CredentialIssuer(config), variant
