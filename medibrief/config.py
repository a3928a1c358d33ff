"""
MediBrief Configuration Module
Centralized configuration for the report pipeline.

Module-level constants hold the defaults. The runtime settings used by the
pipeline classes are resolved once by load_config() into frozen dataclasses
and passed into constructors, so nothing below reads the environment after
start-up.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

# Debug Mode Configuration
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'

# Application Paths
APP_NAME = "MediBrief"
APPDATA_DIR = Path(os.environ.get('APPDATA', os.path.expanduser('~/.config'))) / APP_NAME
LOGS_DIR = APPDATA_DIR / "logs"

# Ensure directories exist
for directory in [APPDATA_DIR, LOGS_DIR]:
    directory.mkdir(parents=True, exist_ok=True)

# Default config file (overridden by MEDIBRIEF_CONFIG)
DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "medibrief.yaml"

# Logging Configuration
LOG_FILE = LOGS_DIR / "processing.log"
DEBUG_LOG_FILE = LOGS_DIR / "debug_flow.txt"
LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# Extraction Configuration
MIN_PDF_TEXT_LENGTH = 50  # Below this a PDF is treated as a scan without a text layer
OCR_LANGUAGE = "eng"
OCR_DPI = 300
FETCH_TIMEOUT_SECONDS = 60
MAX_FILE_SIZE_MB = 50

# Chunking Configuration
DEFAULT_CHUNK_SIZE = 4000  # Characters per strict-extraction chunk
CHUNK_DELAY_SECONDS = 1.0  # Pause between chunk calls (provider rate limits)

# Generation Temperatures
SUMMARY_TEMPERATURE = 0.3
EXTRACTION_TEMPERATURE = 0.0  # Strict extraction wants maximum factuality
EXPLAIN_TEMPERATURE = 0.7

# Summary Mode: "single", "chunked" or "auto"
SUMMARY_MODES = ("single", "chunked", "auto")
DEFAULT_SUMMARY_MODE = "auto"

# Provider Configuration
PROVIDER_TIMEOUT_SECONDS = 120

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_MODEL_NAME = "gemini-2.5-flash"
GEMINI_CONTEXT_WINDOW = 1_000_000

CHAT_API_BASE = "https://api.openai.com/v1"
CHAT_MODEL_NAME = "gpt-4o-mini"
CHAT_CONTEXT_WINDOW = 128_000

OLLAMA_API_BASE = "http://localhost:11434"  # Default Ollama API endpoint
OLLAMA_MODEL_NAME = "llama3.2:3b"
OLLAMA_TIMEOUT_SECONDS = 600  # Local CPU inference can be slow
# Matches Ollama's default for CPU performance
OLLAMA_CONTEXT_WINDOW = 2048

PROVIDER_DEFAULTS = {
    'keyed': {
        'endpoint': GEMINI_API_BASE,
        'model': GEMINI_MODEL_NAME,
        'context_window': GEMINI_CONTEXT_WINDOW,
        'timeout_seconds': PROVIDER_TIMEOUT_SECONDS,
        'key_env': 'GEMINI_API_KEY',
    },
    'chat': {
        'endpoint': CHAT_API_BASE,
        'model': CHAT_MODEL_NAME,
        'context_window': CHAT_CONTEXT_WINDOW,
        'timeout_seconds': PROVIDER_TIMEOUT_SECONDS,
        'key_env': 'OPENAI_API_KEY',
    },
    'local': {
        'endpoint': OLLAMA_API_BASE,
        'model': OLLAMA_MODEL_NAME,
        'context_window': OLLAMA_CONTEXT_WINDOW,
        'timeout_seconds': OLLAMA_TIMEOUT_SECONDS,
        'key_env': None,
    },
}
DEFAULT_PROVIDER = 'keyed'


@dataclass(frozen=True)
class ProviderConfig:
    """
    Settings for one language model backend.

    Attributes:
        variant: Registry key of the provider ('keyed', 'chat' or 'local')
        api_key: Credential for hosted variants, None when not configured
        endpoint: Base URL of the generation API
        model: Model identifier sent with every request
        context_window: Context budget in tokens
        timeout_seconds: HTTP timeout per request
        temperature: Used when a caller does not pass a temperature
    """
    variant: str = DEFAULT_PROVIDER
    api_key: str | None = None
    endpoint: str = GEMINI_API_BASE
    model: str = GEMINI_MODEL_NAME
    context_window: int = GEMINI_CONTEXT_WINDOW
    timeout_seconds: float = PROVIDER_TIMEOUT_SECONDS
    temperature: float = SUMMARY_TEMPERATURE

    def __repr__(self) -> str:
        # Never print the credential
        key_state = "set" if self.api_key else "missing"
        return (f"ProviderConfig(variant={self.variant!r}, model={self.model!r}, "
                f"endpoint={self.endpoint!r}, api_key={key_state})")


@dataclass(frozen=True)
class PipelineConfig:
    """Process-wide pipeline settings, read-only after load_config()."""
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_delay_seconds: float = CHUNK_DELAY_SECONDS
    summary_mode: str = DEFAULT_SUMMARY_MODE
    summary_temperature: float = SUMMARY_TEMPERATURE
    extraction_temperature: float = EXTRACTION_TEMPERATURE
    explain_temperature: float = EXPLAIN_TEMPERATURE
    ocr_language: str = OCR_LANGUAGE
    min_pdf_text_length: int = MIN_PDF_TEXT_LENGTH
    ocr_scanned_pdfs: bool = False
    fetch_timeout_seconds: float = FETCH_TIMEOUT_SECONDS

    def __post_init__(self):
        if self.summary_mode not in SUMMARY_MODES:
            raise ValueError(
                f"Unknown summary mode '{self.summary_mode}'. Expected one of: {', '.join(SUMMARY_MODES)}"
            )
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.chunk_delay_seconds < 0:
            raise ValueError(f"chunk_delay_seconds cannot be negative, got {self.chunk_delay_seconds}")


def provider_config_for(variant: str, api_key: str | None = None, **overrides) -> ProviderConfig:
    """
    Build a ProviderConfig for a variant, filling in that variant's defaults.

    Args:
        variant: 'keyed', 'chat' or 'local'
        api_key: Credential (ignored by the local variant)
        **overrides: endpoint, model, context_window, timeout_seconds, temperature

    Returns:
        ProviderConfig with defaults for anything not overridden
    """
    if variant not in PROVIDER_DEFAULTS:
        raise ValueError(
            f"Unknown provider '{variant}'. Expected one of: {', '.join(PROVIDER_DEFAULTS)}"
        )
    defaults = PROVIDER_DEFAULTS[variant]
    values = {
        'endpoint': defaults['endpoint'],
        'model': defaults['model'],
        'context_window': defaults['context_window'],
        'timeout_seconds': defaults['timeout_seconds'],
        'temperature': SUMMARY_TEMPERATURE,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ProviderConfig(
        variant=variant,
        api_key=api_key or None,
        endpoint=str(values['endpoint']).rstrip('/'),
        model=str(values['model']),
        context_window=int(values['context_window']),
        timeout_seconds=float(values['timeout_seconds']),
        temperature=float(values['temperature']),
    )


PIPELINE_SETTING_TYPES = {
    'chunk_size': int,
    'chunk_delay_seconds': float,
    'summary_mode': str,
    'summary_temperature': float,
    'extraction_temperature': float,
    'explain_temperature': float,
    'ocr_language': str,
    'min_pdf_text_length': int,
    'ocr_scanned_pdfs': bool,
    'fetch_timeout_seconds': float,
}

PROVIDER_SETTING_TYPES = {
    'endpoint': str,
    'model': str,
    'context_window': int,
    'timeout_seconds': float,
    'temperature': float,
}


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {section!r}")
    return section


def _coerce_setting(name: str, value, kind: type):
    """Convert a YAML value to the setting's type, raising ValueError on mismatch."""
    if kind is bool:
        if isinstance(value, bool):
            return value
    elif kind is str:
        if isinstance(value, str):
            return value.strip()
    elif isinstance(value, (int, float, str)) and not isinstance(value, bool):
        try:
            return kind(value)
        except ValueError:
            pass
    raise ValueError(f"Config setting '{name}' must be of type {kind.__name__}, got {value!r}")


def _read_config_file(path: Path) -> dict:
    """Load the YAML config file; a missing file yields an empty mapping."""
    try:
        with open(path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        if DEBUG_MODE:
            from medibrief.logging_config import debug_log
            debug_log(f"[Config] No config file at {path}. Using defaults.")
        return {}
    except yaml.YAMLError as e:
        raise ValueError(f"Config file {path} is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_config(path: str | Path | None = None, environ: dict | None = None) -> PipelineConfig:
    """
    Resolve the pipeline configuration once at start-up.

    Precedence (highest first): environment variables, YAML file, defaults.

    Args:
        path: YAML file to read. Defaults to $MEDIBRIEF_CONFIG or config/medibrief.yaml.
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Frozen PipelineConfig

    Raises:
        ValueError: On malformed YAML, unknown provider or invalid values
    """
    env = os.environ if environ is None else environ

    if path is None:
        path = env.get('MEDIBRIEF_CONFIG') or DEFAULT_CONFIG_FILE
    data = _read_config_file(Path(path))

    provider_section = _section(data, 'provider')
    variant = env.get('MEDIBRIEF_PROVIDER') or provider_section.get('variant') or DEFAULT_PROVIDER
    variant = _coerce_setting('variant', variant, str).lower()
    if variant not in PROVIDER_DEFAULTS:
        raise ValueError(
            f"Unknown provider '{variant}'. Expected one of: {', '.join(PROVIDER_DEFAULTS)}"
        )

    key_env = PROVIDER_DEFAULTS[variant]['key_env']
    api_key = (
        env.get('MEDIBRIEF_API_KEY')
        or (env.get(key_env) if key_env else None)
        or provider_section.get('api_key')
    )

    overrides = {
        key: _coerce_setting(key, provider_section[key], kind)
        for key, kind in PROVIDER_SETTING_TYPES.items()
        if provider_section.get(key) is not None
    }
    if env.get('MEDIBRIEF_ENDPOINT'):
        overrides['endpoint'] = env['MEDIBRIEF_ENDPOINT']
    if env.get('MEDIBRIEF_MODEL'):
        overrides['model'] = env['MEDIBRIEF_MODEL']

    provider = provider_config_for(
        variant,
        api_key=_coerce_setting('api_key', api_key, str) if api_key else None,
        **overrides,
    )

    pipeline_section = _section(data, 'pipeline')
    settings = {
        key: _coerce_setting(key, pipeline_section[key], kind)
        for key, kind in PIPELINE_SETTING_TYPES.items()
        if key in pipeline_section
    }
    if env.get('MEDIBRIEF_SUMMARY_MODE'):
        settings['summary_mode'] = env['MEDIBRIEF_SUMMARY_MODE'].strip().lower()
    if env.get('MEDIBRIEF_CHUNK_SIZE'):
        try:
            settings['chunk_size'] = int(env['MEDIBRIEF_CHUNK_SIZE'])
        except ValueError as e:
            raise ValueError(f"MEDIBRIEF_CHUNK_SIZE must be an integer: {e}") from e
    if env.get('MEDIBRIEF_OCR_LANGUAGE'):
        settings['ocr_language'] = env['MEDIBRIEF_OCR_LANGUAGE'].strip()

    config = replace(PipelineConfig(provider=provider), **settings)

    if DEBUG_MODE:
        from medibrief.logging_config import debug_log
        debug_log(f"[Config] Loaded {config.provider!r}, mode={config.summary_mode}, "
                  f"chunk_size={config.chunk_size}")

    return config
