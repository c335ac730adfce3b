"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Los registros de configuración y las tarjetas llegan en camelCase (UI, JSON
  del modelo); los alias permiten aceptarlos sin ensuciar los nombres Python.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
- Todos son value objects con alcance de una petición: no hay estado compartido.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Capability(str, Enum):
    """Tipo de generación que soporta un backend."""

    TEXT = "text"
    IMAGE = "image"
    UNIVERSAL = "universal"

    def serves(self, requested: "Capability") -> bool:
        """Un registro sirve la capacidad pedida si coincide o es `universal`."""

        return self is requested or self is Capability.UNIVERSAL


class ProviderFamily(str, Enum):
    """Dialecto de protocolo que habla un backend."""

    OPENAI_COMPATIBLE = "openai-compatible"
    DASHSCOPE = "dashscope"
    MODELSCOPE = "modelscope"


class PromptKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TIMED_OUT)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Registros del almacén de configuración
# ---------------------------------------------------------------------------


class BackendProfile(_CamelModel):
    """Registro de configuración de un backend IA (lo gestiona el CRUD admin)."""

    id: str = Field(..., min_length=1, description="Identificador estable del registro.")
    name: str = Field(..., min_length=1, description="Nombre visible en la UI.")
    description: str | None = Field(default=None)
    capability: Capability = Field(
        default=Capability.TEXT,
        validation_alias=AliasChoices("capability", "kind"),
        description="Capacidad declarada (text/image/universal).",
    )
    provider: str = Field(
        default="openai",
        description="Vendor (openai, azure, siliconflow, zhipu, dashscope, modelscope...).",
    )
    base_url: str = Field(
        ...,
        min_length=1,
        alias="baseURL",
        validation_alias=AliasChoices("baseURL", "baseUrl", "base_url"),
    )
    api_key: str = Field(default="", repr=False)
    model: str = Field(..., min_length=1)
    system_prompt: str | None = Field(default=None)
    is_default: bool = Field(default=False)
    enabled: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("capability", mode="before")
    @classmethod
    def _lower_capability(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("provider", mode="before")
    @classmethod
    def _lower_provider(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or "openai"
        return value

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")


class PromptTemplate(_CamelModel):
    """Plantilla de system prompt (texto para esquemas, imagen para prompts de imagen)."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    kind: PromptKind = Field(default=PromptKind.TEXT)
    content: str = Field(..., min_length=1)
    is_default: bool = Field(default=False)
    enabled: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utcnow)


class ImageStyle(_CamelModel):
    """Etiqueta de estilo: un fragmento de prompt reutilizable."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    prompt_snippet: str = Field(default="")
    enabled: bool = Field(default=True)


# ---------------------------------------------------------------------------
# Snapshots por petición
# ---------------------------------------------------------------------------


class BackendConfig(BaseModel):
    """Snapshot resuelto e inmutable de un backend para una operación.

    Lo crea el resolver por petición; nunca se persiste.
    """

    model_config = ConfigDict(frozen=True)

    endpoint_base_url: str
    api_key: str = Field(repr=False)
    model_id: str
    provider_family: ProviderFamily
    capability: Capability
    provider: str = "openai"
    config_id: str | None = None
    config_name: str | None = None
    system_prompt: str | None = None

    def endpoint(self, path: str) -> str:
        """Une la base con un path relativo sin duplicar barras."""

        return f"{self.endpoint_base_url.rstrip('/')}/{path.lstrip('/')}"

    @property
    def label(self) -> str:
        return self.config_name or self.config_id or self.model_id


class ChatMessage(BaseModel):
    role: str = Field(..., pattern=r"^(system|user|assistant)$")
    content: str


class CallOptions(BaseModel):
    temperature: float | None = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=1000, ge=1)


class ImagePrompt(BaseModel):
    """Payload de imagen: un prompt más parámetros opcionales."""

    prompt: str = Field(..., min_length=1)
    negative_prompt: str | None = None
    size: str | None = None


class GenerationRequest(BaseModel):
    """Petición genérica: capacidad, selección explícita opcional y payload."""

    capability: Capability
    explicit_config_id: str | None = None
    prompt_payload: list[ChatMessage] | ImagePrompt
    call_options: CallOptions = Field(default_factory=CallOptions)


class AsyncJob(BaseModel):
    """Tarea asíncrona del proveedor; solo vive durante una llamada."""

    job_id: str
    poll_url: str
    submitted_at: datetime = Field(default_factory=_utcnow)
    status: JobStatus = JobStatus.PENDING


class TaskSnapshot(BaseModel):
    """Lectura normalizada del endpoint de estado de una tarea."""

    status: JobStatus
    image_url: str | None = None
    message: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)


class ImageSubmission(BaseModel):
    """Resultado del envío: URL inmediata o tarea pendiente de sondeo."""

    image_url: str | None = None
    job: AsyncJob | None = None


# ---------------------------------------------------------------------------
# Salida estructurada
# ---------------------------------------------------------------------------


class CardPoint(_CamelModel):
    emoji: str = "🔹"
    label: str = ""
    detail: str = ""


class CardRecord(_CamelModel):
    """Unidad estructurada recuperada de la salida del modelo."""

    id: str | None = None
    page_number: int = Field(..., ge=1)
    page_type: str = "concept"
    title: str = ""
    subtitle: str = ""
    content: str = ""
    points: list[CardPoint] = Field(default_factory=list)
    image_prompt: str = ""
    image_prompt_explain: str = ""
    image_prompt_auto_generated: bool = False


class QuickPrompt(_CamelModel):
    id: str
    angle: str
    angle_description: str = ""
    prompt: str = ""
    content_basis: str = ""
    edited: bool = False


class RepairStage(str, Enum):
    """Etapas de la tubería de recuperación, en orden de escalada."""

    DIRECT = "direct"
    ESCAPE_NEWLINES = "escape_newlines"
    IMAGE_PROMPT_REPAIR = "image_prompt_repair"


class RecoveryAttempt(BaseModel):
    """Registro efímero de una etapa de recuperación."""

    raw_text: str = Field(repr=False)
    extracted_json_text: str = Field(repr=False)
    repair_stage: RepairStage
    parse_error: str | None = None


class RecoveryResult(BaseModel):
    """Elementos recuperados más la forma en la que se encontraron."""

    items: list[Any]
    shape: str
    attempts: list[RecoveryAttempt] = Field(default_factory=list)


class OutlineResult(_CamelModel):
    cards: list[CardRecord]
    backfilled_prompts: int = 0


class ImagePromptResult(_CamelModel):
    """Prompt de imagen para una tarjeta (o su sustituto determinista)."""

    card_id: str | None = None
    page_number: int
    image_prompt: str
    fallback_used: bool = False
    error: str | None = None


class ImagePromptBatch(_CamelModel):
    prompts: list[ImagePromptResult]
    styles_applied: int = 0

    @property
    def fallback_count(self) -> int:
        return sum(1 for p in self.prompts if p.fallback_used)


class QuickPromptBatch(_CamelModel):
    prompts: list[QuickPrompt]
    count: int


class TranslationResult(_CamelModel):
    original: str
    translated: str
    direction: str


class CopywritingResult(_CamelModel):
    copy_text: str = Field(alias="copy")
    vibe: str
    mode: str


class ConnectionTestResult(_CamelModel):
    success: bool
    message: str


class ScrapedSource(BaseModel):
    """Texto plano de una URL (colaborador scraper)."""

    title: str = ""
    content: str = ""
    images: list[str] = Field(default_factory=list)
    source: str = "generic"
    url: str


# ---------------------------------------------------------------------------
# Sobre de resultado para llamadores
# ---------------------------------------------------------------------------


class ServedBy(_CamelModel):
    config_name: str | None = None
    model: str


_STATUS_BY_KIND: dict[str, int] = {
    "configuration_unavailable": 503,
    "invalid_request": 400,
    "async_task_timeout": 504,
    "cancelled": 499,
}


class OperationResult(_CamelModel):
    """Sobre `{success, data, servedBy}` / `{success: false, errorKind, message}`."""

    success: bool
    data: Any = None
    served_by: ServedBy | None = None
    error_kind: str | None = None
    message: str | None = None
    detail: str | None = None

    @property
    def http_status(self) -> int:
        if self.success:
            return 200
        return _STATUS_BY_KIND.get(self.error_kind or "", 500)

    def to_payload(self) -> dict[str, Any]:
        """Serializa el sobre con claves camelCase, omitiendo vacíos."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
