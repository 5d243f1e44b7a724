import re
from typing import Any


class SecretMasker:
    """Mask backend credentials in log messages and structures."""

    # Captures key followed by potential separator and value
    PATTERNS = [
        (r"(api[_-]?key['\"]?\s*[:=]\s*['\"]?)([^'\"\s,]+)", r"\1***MASKED***"),
        (r"(authorization['\"]?\s*[:=]\s*['\"]?)(basic|bearer)(\s+)([^'\"\s,]+)", r"\1\2\3***MASKED***"),
        (r"(basic\s+)([a-zA-Z0-9+/=_-]{8,})", r"\1***MASKED***"),
        (r"(bearer\s+)([a-zA-Z0-9._-]+)", r"\1***MASKED***"),
        (r"(password['\"]?\s*[:=]\s*['\"]?)([^'\"\s,]+)", r"\1***MASKED***"),
    ]

    # Keys to mask in dictionaries (lowercase)
    SENSITIVE_KEYS = {
        'api_key', 'apikey', 'api-key',
        'authorization', 'proxy-authorization',
        'password', 'token', 'cookie', 'set-cookie',
    }

    @classmethod
    def mask_string(cls, text: str) -> str:
        """Mask secrets in a string using regex."""
        if not text:
            return text

        result = text
        for pattern, replacement in cls.PATTERNS:
            result = re.sub(pattern, replacement, result, flags=re.IGNORECASE)
        return result

    @classmethod
    def mask_value(cls, value: Any) -> Any:
        if isinstance(value, str) and len(value) > 20:
            return '***' + value[-4:]
        return '***MASKED***'

    @classmethod
    def mask_structure(cls, data: Any) -> Any:
        """Recursively mask secrets in a dictionary or list."""
        if isinstance(data, dict):
            masked = {}
            for key, value in data.items():
                if isinstance(key, str) and key.lower() in cls.SENSITIVE_KEYS:
                    masked[key] = cls.mask_value(value)
                else:
                    masked[key] = cls.mask_structure(value)
            return masked
        elif isinstance(data, (list, tuple)):
            return type(data)(cls.mask_structure(item) for item in data)
        elif isinstance(data, str):
            return cls.mask_string(data)
        else:
            return data
