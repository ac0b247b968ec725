"""
Configuration
=============
Settings for OTP issuance/verification and for the SMS gateway.

Every value has a default and can be overridden from the environment
(``OTP_*`` and ``SMS_GATEWAY_*``). The hash key has no default: it must be
supplied by the operator.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from .exceptions import ConfigurationError

MIN_HASH_KEY_LENGTH = 16


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")


def _get_float(env: Mapping[str, str], key: str, default: float) -> float:
    value = env.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {value!r}")


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = env.get(key)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_prefixes(env: Mapping[str, str], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = env.get(key)
    if not value:
        return default
    return tuple(p.strip() for p in value.split(",") if p.strip())


@dataclass
class AuthSettings:
    """Configuration for OTP login."""
    hash_key: str = ""
    otp_length: int = 6
    otp_expiry_minutes: int = 2
    max_sends_per_phone: int = 3
    max_sends_per_ip: int = 10
    send_window_seconds: int = 300  # 5 minutes
    max_failed_attempts: int = 5
    lockout_minutes: int = 15
    allowed_prefixes: Tuple[str, ...] = ("+98",)
    registration_token_minutes: int = 15
    session_ttl_minutes: int = 20
    message_template: str = "Your login code: {code}"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AuthSettings":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            hash_key=env.get("OTP_HASH_KEY", ""),
            otp_length=_get_int(env, "OTP_LENGTH", defaults.otp_length),
            otp_expiry_minutes=_get_int(env, "OTP_EXPIRY_MINUTES", defaults.otp_expiry_minutes),
            max_sends_per_phone=_get_int(env, "OTP_MAX_SENDS_PER_PHONE", defaults.max_sends_per_phone),
            max_sends_per_ip=_get_int(env, "OTP_MAX_SENDS_PER_IP", defaults.max_sends_per_ip),
            send_window_seconds=_get_int(env, "OTP_SEND_WINDOW_SECONDS", defaults.send_window_seconds),
            max_failed_attempts=_get_int(env, "OTP_MAX_FAILED_ATTEMPTS", defaults.max_failed_attempts),
            lockout_minutes=_get_int(env, "OTP_LOCKOUT_MINUTES", defaults.lockout_minutes),
            allowed_prefixes=_get_prefixes(env, "OTP_ALLOWED_PREFIXES", defaults.allowed_prefixes),
            registration_token_minutes=_get_int(
                env, "OTP_REGISTRATION_TOKEN_MINUTES", defaults.registration_token_minutes
            ),
            session_ttl_minutes=_get_int(env, "OTP_SESSION_TTL_MINUTES", defaults.session_ttl_minutes),
            message_template=env.get("OTP_MESSAGE_TEMPLATE", defaults.message_template),
        )

    def validate(self) -> "AuthSettings":
        """Raise ConfigurationError if the settings cannot be used safely."""
        if len(self.hash_key) < MIN_HASH_KEY_LENGTH:
            raise ConfigurationError(
                f"OTP hash key must be at least {MIN_HASH_KEY_LENGTH} characters"
            )
        positive = {
            "otp_length": self.otp_length,
            "otp_expiry_minutes": self.otp_expiry_minutes,
            "max_sends_per_phone": self.max_sends_per_phone,
            "max_sends_per_ip": self.max_sends_per_ip,
            "send_window_seconds": self.send_window_seconds,
            "max_failed_attempts": self.max_failed_attempts,
            "lockout_minutes": self.lockout_minutes,
            "registration_token_minutes": self.registration_token_minutes,
            "session_ttl_minutes": self.session_ttl_minutes,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        if not self.allowed_prefixes:
            raise ConfigurationError("allowed_prefixes must not be empty")
        if "{code}" not in self.message_template:
            raise ConfigurationError("message_template must contain '{code}'")
        try:
            self.message_template.format(code="0")
        except (KeyError, IndexError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"message_template cannot be rendered: {e!r}")
        return self


@dataclass
class GatewayConfig:
    """Configuration for the HTTP SMS gateway."""
    base_url: str = "https://panel.asanak.com"
    send_path: str = "/webservice/v1rest/sendsms"
    username: str = ""
    password: str = field(default="", repr=False)
    source_number: str = ""
    enabled: bool = True
    timeout_seconds: float = 15.0
    max_attempts: int = 3
    base_delay_seconds: float = 0.4
    max_delay_seconds: float = 15.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "GatewayConfig":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            base_url=env.get("SMS_GATEWAY_BASE_URL", defaults.base_url),
            send_path=env.get("SMS_GATEWAY_SEND_PATH", defaults.send_path),
            username=env.get("SMS_GATEWAY_USERNAME", ""),
            password=env.get("SMS_GATEWAY_PASSWORD", ""),
            source_number=env.get("SMS_GATEWAY_SOURCE_NUMBER", ""),
            enabled=_get_bool(env, "SMS_GATEWAY_ENABLED", defaults.enabled),
            timeout_seconds=_get_float(env, "SMS_GATEWAY_TIMEOUT_SECONDS", defaults.timeout_seconds),
            max_attempts=_get_int(env, "SMS_GATEWAY_MAX_ATTEMPTS", defaults.max_attempts),
            base_delay_seconds=_get_float(
                env, "SMS_GATEWAY_BASE_DELAY_SECONDS", defaults.base_delay_seconds
            ),
            max_delay_seconds=_get_float(
                env, "SMS_GATEWAY_MAX_DELAY_SECONDS", defaults.max_delay_seconds
            ),
        )
