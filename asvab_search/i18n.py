# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Internationalization (i18n).

Localized messages for the API layer.
Default: English (en)
Supported: Spanish (es)
"""

from functools import lru_cache

__all__ = [
    "get_trans",
    "DEFAULT_LANGUAGE",
    "SUPPORTED_LANGUAGES",
]

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = frozenset({"en", "es"})

TRANSLATIONS: dict[str, dict[str, str]] = {
    # System Status
    "system_operational": {
        "en": "operational",
        "es": "operativo",
    },
    "system_healthy": {
        "en": "healthy",
        "es": "saludable",
    },
    "info_service_desc": {
        "en": "Search and discovery for ASVAB practice content.",
        "es": "Búsqueda y descubrimiento de contenido de práctica ASVAB.",
    },

    # Generic Errors
    "error_too_many_requests": {
        "en": "Too Many Requests. Please slow down.",
        "es": "Demasiadas solicitudes. Por favor, reduce la velocidad.",
    },
    "error_internal_db": {
        "en": "Internal database error",
        "es": "Error interno de base de datos",
    },
    "error_unexpected": {
        "en": "An unexpected server error occurred.",
        "es": "Ocurrió un error inesperado en el servidor.",
    },

    # Auth Errors
    "error_missing_auth": {
        "en": "Missing Authorization header",
        "es": "Falta la cabecera Authorization",
    },
    "error_bearer_format": {
        "en": "Use: Bearer <api-key>",
        "es": "Usa: Bearer <api-key>",
    },
    "error_invalid_key_format": {
        "en": "Invalid key format",
        "es": "Formato de clave inválido",
    },
    "error_invalid_key": {
        "en": "Invalid or revoked key",
        "es": "Clave inválida o revocada",
    },
    "error_missing_permission": {
        "en": "Missing permission: {permission}",
        "es": "Falta el permiso: {permission}",
    },

    # Search Errors
    "error_search_failed": {
        "en": "Search operation failed",
        "es": "La búsqueda ha fallado",
    },
    "error_semantic_search_failed": {
        "en": "Semantic search operation failed",
        "es": "La búsqueda semántica ha fallado",
    },
    "error_similar_failed": {
        "en": "Similar content search failed",
        "es": "La búsqueda de contenido similar ha fallado",
    },
    "error_item_not_found": {
        "en": "Source item not found",
        "es": "Elemento de origen no encontrado",
    },
    "error_feedback_failed": {
        "en": "Failed to record search feedback",
        "es": "No se pudo registrar la valoración de la búsqueda",
    },
    "error_preset_failed": {
        "en": "Failed to save filter preset",
        "es": "No se pudo guardar el filtro predefinido",
    },

    # Confirmations
    "info_feedback_recorded": {
        "en": "Feedback recorded successfully",
        "es": "Valoración registrada correctamente",
    },
}


@lru_cache(maxsize=1024)
def get_trans(key: str, lang: str | None = "en") -> str:
    """Retrieve a translation for a given key and language.

    Falls back to English if the language or key is missing.
    """
    if not lang or not isinstance(lang, str):
        lang = DEFAULT_LANGUAGE

    # Normalize lang code (e.g. 'es-ES' -> 'es')
    lang_code = lang.split(",")[0].split("-")[0].strip().lower()

    entry = TRANSLATIONS.get(key)
    if not entry:
        return key

    return entry.get(lang_code, entry.get(DEFAULT_LANGUAGE, key))
