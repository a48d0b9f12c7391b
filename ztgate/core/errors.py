"""Exception hierarchy for token, key set, routing and proxy failures."""


class GatewayError(Exception):
    """Base class for all gateway errors."""


class TokenError(GatewayError):
    """A token could not be decoded or verified."""


class MalformedTokenError(TokenError):
    """Token is not three base64url segments of JSON."""


class UnknownKeyError(TokenError):
    """No published key matches the token's kid."""


class SignatureInvalidError(TokenError):
    """Signature does not verify against the resolved key."""


class TokenExpiredError(TokenError):
    """Token exp claim is in the past."""


class KeySetUnavailableError(GatewayError):
    """The signing key set could not be loaded or created."""


class ConfigError(GatewayError):
    """The workload routing table could not be obtained."""


class ConfigParseError(ConfigError):
    """Remote workload config is not a valid declarative document."""


class ConfigCorruptError(ConfigError):
    """Persisted workload config does not match the expected shape."""


class UpstreamConfigError(ConfigError):
    """Remote workload config endpoint returned a non-success status."""


class WorkloadNotFoundError(GatewayError):
    """Request path does not name a routable workload."""

    def __init__(self, workload: str) -> None:
        super().__init__(f"workload '{workload}' not found")
        self.workload = workload


class ProxyForwardError(GatewayError):
    """Forwarding a request to a backend host failed."""
