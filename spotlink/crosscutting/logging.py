import json
import logging
import re
from datetime import datetime
from typing import Dict, Any, Optional
from contextvars import ContextVar

# Context variables for correlation
resource_type_var: ContextVar[Optional[str]] = ContextVar('resource_type', default=None)
resource_id_var: ContextVar[Optional[str]] = ContextVar('resource_id', default=None)
stage_var: ContextVar[Optional[str]] = ContextVar('stage', default=None)


class SecretMasker:
    """Masks sensitive information in log messages."""

    def __init__(self):
        """Initialize secret masker with patterns."""
        self.patterns = [
            # API tokens and keys
            r'(?i)(token|key|secret|password|auth)[\s]*[:=][\s]*["\']?([a-zA-Z0-9\-_\.]{10,})["\']?',
            # Spotify access tokens
            r'(?i)(spotify_access_token|access_token)[\s]*[:=][\s]*["\']?([a-zA-Z0-9\-_\.]{50,})["\']?',
            # Client secrets
            r'(?i)(client_secret)[\s]*[:=][\s]*["\']?([a-zA-Z0-9\-_\.]{20,})["\']?',
            # Authorization headers
            r'(?i)(authorization|bearer)[\s]*[:=][\s]*["\']?([a-zA-Z0-9\-_\.]{50,})["\']?',
        ]

        self.compiled_patterns = [re.compile(pattern) for pattern in self.patterns]

    def mask_secrets(self, text: str) -> str:
        """Mask sensitive information in text."""
        if not text:
            return text

        masked_text = text

        for pattern in self.compiled_patterns:
            def replace_match(match):
                prefix = match.group(1)
                secret = match.group(2)
                # Keep first 4 and last 4 characters
                if len(secret) > 8:
                    masked_secret = secret[:4] + '*' * (len(secret) - 8) + secret[-4:]
                else:
                    masked_secret = '*' * len(secret)
                return f"{prefix}: {masked_secret}"

            masked_text = pattern.sub(replace_match, masked_text)

        return masked_text

    def mask_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Mask sensitive information in string values of a dictionary."""
        if not data:
            return data

        masked_data = {}

        for key, value in data.items():
            if isinstance(value, str):
                masked_data[key] = self.mask_secrets(value)
            elif isinstance(value, dict):
                masked_data[key] = self.mask_dict(value)
            elif isinstance(value, list):
                masked_data[key] = [self.mask_dict(item) if isinstance(item, dict)
                                    else self.mask_secrets(item) if isinstance(item, str)
                                    else item for item in value]
            else:
                masked_data[key] = value

        return masked_data


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self):
        super().__init__()
        self.masker = SecretMasker()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        resource_type = resource_type_var.get()
        resource_id = resource_id_var.get()
        stage = stage_var.get()

        log_entry = {
            'ts': datetime.utcnow().isoformat() + 'Z',
            'level': record.levelname,
            'logger': record.name,
            'message': self.masker.mask_secrets(record.getMessage()),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if resource_type:
            log_entry['resourceType'] = resource_type
        if resource_id:
            log_entry['resourceId'] = resource_id
        if stage:
            log_entry['stage'] = stage

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        if getattr(record, 'fields', None):
            log_entry['fields'] = self.masker.mask_dict(record.fields)

        return json.dumps(log_entry, ensure_ascii=False)


class CorrelationContext:
    """Context manager binding the resource being loaded to log records."""

    def __init__(self, resource_type: Optional[str] = None,
                 resource_id: Optional[str] = None,
                 stage: Optional[str] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.stage = stage
        self._tokens = []

    def __enter__(self):
        if self.resource_type is not None:
            self._tokens.append((resource_type_var, resource_type_var.set(self.resource_type)))
        if self.resource_id is not None:
            self._tokens.append((resource_id_var, resource_id_var.set(self.resource_id)))
        if self.stage is not None:
            self._tokens.append((stage_var, stage_var.set(self.stage)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


def setup_logging(level: str = 'INFO',
                  log_file: Optional[str] = None) -> logging.Logger:
    """Setup structured logging for the spotlink package."""
    logger = logging.getLogger('spotlink')
    logger.setLevel(getattr(logging, level.upper()))

    logger.handlers.clear()

    formatter = StructuredFormatter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def log_with_fields(logger: logging.Logger, level: str, message: str,
                    fields: Optional[Dict[str, Any]] = None, **kwargs):
    """Log message with additional structured fields."""
    record_fields = dict(fields or {})
    record_fields.update(kwargs)
    logger.log(getattr(logging, level.upper()), message,
               extra={'fields': record_fields}, stacklevel=2)
