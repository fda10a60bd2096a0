import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

BackendKind = Literal["mailgun", "brevo", "mailjet"]


def normalize_path(path: str | None) -> str:
    """'/news/' and 'news' both become '/news'; blank stays ''."""
    if not path or not path.strip():
        return ""
    p = path.strip()
    if not p.startswith("/"):
        p = "/" + p
    return p.rstrip("/")


def normalize_url(url: str) -> str:
    return url.strip().rstrip("/")


class BackendRules(BaseModel):
    kind: BackendKind
    name: str | None = None
    api_url: str
    api_key: str = ""
    api_secret: str = ""
    subscribe_verb: str | None = None
    unsubscribe_verb: str | None = None
    timeout_seconds: float = 10.0

    @field_validator("api_url")
    @classmethod
    def _strip_url(cls, v: str) -> str:
        if not v or any(c.isspace() for c in v.strip()):
            raise ValueError("api_url must be a non-empty URL without whitespace")
        return normalize_url(v)

    @property
    def backend_name(self) -> str:
        return self.name or self.kind


class ListRules(BaseModel):
    address: str
    backend: str | None = None
    list_id: str | None = None
    name: str | None = None
    description: str | None = None
    locale: str | None = None
    warn_every: int | None = Field(default=None, gt=0)

    @field_validator("address")
    @classmethod
    def _no_whitespace(cls, v: str) -> str:
        if not v or any(c.isspace() for c in v):
            raise ValueError("list address must be non-empty and contain no whitespace")
        return v


class SmtpRules(BaseModel):
    enabled: bool = True
    host: str | None = None
    port: int = 587
    user: str | None = None
    password: str | None = None
    sender: str | None = Field(default=None, alias="from")
    use_tls: bool = True
    timeout_seconds: float = 30.0
    message_id_domain: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_complete(self) -> bool:
        return bool(self.host and self.port and self.user and self.password)


class RateLimitRules(BaseModel):
    window_seconds: int = Field(default=3600, gt=0)
    max_requests: int = Field(default=10, ge=0)
    prune_threshold: int = Field(default=1000, gt=0)


class TokenRules(BaseModel):
    csrf_ttl_hours: float = Field(default=8, gt=0)
    confirmation_ttl_hours: float = Field(default=24, gt=0)
    prune_threshold: int = Field(default=10_000, gt=0)


class PipelineRules(BaseModel):
    mode: Literal["sync", "queued"] = "sync"
    queue_size: int = Field(default=10, gt=0)
    enqueue_timeout_seconds: float = Field(default=2.0, ge=0)
    result_timeout_seconds: float = Field(default=30.0, gt=0)


class Rules(BaseModel):
    base_url: str = "http://localhost:8080"
    base_path: str = ""
    default_locale: Literal["en", "fr"] = "en"
    admin_email: str | None = None
    team: str | None = None
    warn_every_x_subscribers: int = Field(default=100, gt=0)
    lists_include_regexp: str | None = None
    lists_exclude_regexp: str | None = None
    backends: list[BackendRules] = Field(default_factory=list)
    lists: list[ListRules] = Field(default_factory=list)
    smtp: SmtpRules = Field(default_factory=SmtpRules)
    rate_limit: RateLimitRules = Field(default_factory=RateLimitRules)
    tokens: TokenRules = Field(default_factory=TokenRules)
    pipeline: PipelineRules = Field(default_factory=PipelineRules)
    ui_strings: dict[str, Any] = Field(default_factory=dict)
    log_level: str = "INFO"
    log_file: str | None = None

    @field_validator("base_url")
    @classmethod
    def _base_url(cls, v: str) -> str:
        return normalize_url(v)

    @field_validator("base_path")
    @classmethod
    def _base_path(cls, v: str) -> str:
        return normalize_path(v)

    @field_validator("lists_include_regexp", "lists_exclude_regexp")
    @classmethod
    def _compiles(cls, v: str | None) -> str | None:
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"invalid regular expression {v!r}: {e}") from e
        return v

    @model_validator(mode="after")
    def _lists_reference_known_backends(self) -> "Rules":
        names = {b.backend_name for b in self.backends}
        if len(names) != len(self.backends):
            raise ValueError("backend names must be unique")
        for ml in self.lists:
            if ml.backend is not None and ml.backend not in names:
                raise ValueError(f"list {ml.address} references unknown backend {ml.backend!r}")
        return self

    def list_rules(self, address: str) -> ListRules | None:
        for ml in self.lists:
            if ml.address == address:
                return ml
        return None

    def warn_every(self, address: str) -> int:
        ml = self.list_rules(address)
        if ml is not None and ml.warn_every:
            return ml.warn_every
        return self.warn_every_x_subscribers

    @property
    def public_url(self) -> str:
        return f"{self.base_url}{self.base_path}"
