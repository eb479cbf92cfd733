"""Localized fixed strings used by the synthesizer and resolver."""

PHRASES = {
    "en": {
        "default_agent_name": "Assistant",
        "default_greeting": "Hi! How can I help you today?",
        "escalation_with_contact": (
            "I'm sorry to hear that. Our team will take care of it directly, "
            "please contact {contact}."
        ),
        "escalation_without_contact": (
            "I'm sorry to hear that. Please reach out to the store's support "
            "team so they can help you directly."
        ),
        "no_exact_match": "I couldn't find an exact match. You can browse the full catalog here: {url}",
        "no_exact_match_no_url": "I couldn't find an exact match. Could you tell me a bit more about what you need?",
        "best_options": "Here are the best options:",
        "checking_stock": "One moment, checking the catalog...",
        "phase_started": "Starting...",
        "phase_analyzing": "Analyzing brand and site structure...",
        "phase_inventory": "Extracting inventory...",
        "phase_finalizing": "Finalizing database...",
        "phase_done": "OK",
        "phase_failed": "Training failed",
    },
    "es": {
        "default_agent_name": "Asistente",
        "default_greeting": "¡Hola! ¿En qué puedo ayudarte hoy?",
        "escalation_with_contact": (
            "Lamento mucho lo ocurrido. Nuestro equipo lo gestionará directamente, "
            "por favor contacta con {contact}."
        ),
        "escalation_without_contact": (
            "Lamento mucho lo ocurrido. Por favor, contacta con el servicio de "
            "atención al cliente de la tienda para que te ayuden directamente."
        ),
        "no_exact_match": "No he encontrado resultados exactos. Puedes ver todo el catálogo aquí: {url}",
        "no_exact_match_no_url": "No he encontrado resultados exactos. ¿Puedes darme más detalles de lo que buscas?",
        "best_options": "Aquí tienes las mejores opciones:",
        "checking_stock": "Un momento, estoy consultando el catálogo...",
        "phase_started": "Iniciando...",
        "phase_analyzing": "Analizando marca y estructura del sitio...",
        "phase_inventory": "Extrayendo inventario...",
        "phase_finalizing": "Finalizando base de datos...",
        "phase_done": "OK",
        "phase_failed": "El entrenamiento ha fallado",
    },
}

# Prose that announces cards; checked in every language
IMPLIED_RESULTS = {
    "en": ["here are", "here you have", "options", "take a look", "i found", "below"],
    "es": ["aquí tienes", "aqui tienes", "opciones", "te muestro", "he encontrado", "a continuación"],
}


def phrase(key: str, language: str = "en", **kwargs) -> str:
    """Look up a phrase, falling back to English."""
    table = PHRASES.get(language, PHRASES["en"])
    template = table.get(key, PHRASES["en"][key])
    return template.format(**kwargs) if kwargs else template


def implies_results(text: str) -> bool:
    lowered = (text or "").lower()
    return any(marker in lowered for markers in IMPLIED_RESULTS.values() for marker in markers)
