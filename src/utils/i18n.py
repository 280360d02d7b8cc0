"""Localized user-facing messages for Tedee Hub.

Messages are keyed by dotted identifiers (``state.inUse``, ``errors.response``)
so the hub surface can show them in the configured language.
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "state.notAvailable": "Device is not available, please try again later.",
        "state.inUse": "Lock is in use, please wait until the current operation has finished.",
        "state.unknown": "Lock state is unknown.",
        "state.disconnected": "Lock is disconnected.",
        "state.uncalibrated": "Lock is uncalibrated, please calibrate the lock using the Tedee app.",
        "state.calibrating": "Lock is calibrating, please wait.",
        "state.updating": "Lock is updating its firmware, please wait.",
        "errors.notReadyToLock": "Lock is not ready to lock, please try again.",
        "errors.notReadyToUnlock": "Lock is not ready to unlock, please try again.",
        "errors.firstUnLock": "The lock must be unlocked before the spring can be pulled.",
        "errors.pullSpringDisabled": "Pull spring is disabled for this lock.",
        "errors.response": "Invalid response from the Tedee API, please try again.",
        "errors.operationFailed": "The lock did not complete the operation.",
        "errors.tooManyTries": "The lock did not respond in time, stopped waiting.",
        "errors.timeout": "The operation took too long, stopped waiting.",
    },
    "nl": {
        "state.notAvailable": "Apparaat is niet beschikbaar, probeer het later opnieuw.",
        "state.inUse": "Slot is in gebruik, wacht tot de huidige actie klaar is.",
        "state.unknown": "Status van het slot is onbekend.",
        "state.disconnected": "Slot is niet verbonden.",
        "state.uncalibrated": "Slot is niet gekalibreerd, kalibreer het slot met de Tedee app.",
        "state.calibrating": "Slot wordt gekalibreerd, even geduld.",
        "state.updating": "Slot wordt bijgewerkt, even geduld.",
        "errors.notReadyToLock": "Slot is niet klaar om te vergrendelen, probeer het opnieuw.",
        "errors.notReadyToUnlock": "Slot is niet klaar om te ontgrendelen, probeer het opnieuw.",
        "errors.firstUnLock": "Het slot moet eerst ontgrendeld zijn voordat de veer getrokken kan worden.",
        "errors.pullSpringDisabled": "Trekveer is uitgeschakeld voor dit slot.",
        "errors.response": "Ongeldig antwoord van de Tedee API, probeer het opnieuw.",
        "errors.operationFailed": "Het slot heeft de actie niet voltooid.",
        "errors.tooManyTries": "Het slot reageerde niet op tijd, wachten gestopt.",
        "errors.timeout": "De actie duurde te lang, wachten gestopt.",
    },
}

_language = DEFAULT_LANGUAGE


def set_language(language: str) -> None:
    """Select the language used by translate()."""
    global _language

    if language not in MESSAGES:
        logger.warning(f"Unsupported language '{language}', falling back to '{DEFAULT_LANGUAGE}'")
        language = DEFAULT_LANGUAGE
    _language = language


def get_language() -> str:
    """Get the active language."""
    return _language


def translate(key: str) -> str:
    """Return the localized message for a key.

    Falls back to the default language, then to the key itself.
    """
    message = MESSAGES.get(_language, {}).get(key)
    if message is None:
        message = MESSAGES[DEFAULT_LANGUAGE].get(key, key)
    return message
