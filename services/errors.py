"""
Error taxonomy shared by the chat, AI and voice services.

Every error carries a ``user_message`` that is safe to show in the interface;
``details`` holds the technical reason for the logs.
"""

from typing import Optional


class VoiceAssistantError(Exception):
    """Base class for all voice assistant errors"""

    default_message = "Something went wrong"

    def __init__(self, user_message: Optional[str] = None, details: Optional[str] = None):
        self.user_message = user_message or self.default_message
        self.details = details
        super().__init__(self.user_message if not details else f"{self.user_message} ({details})")


class ValidationError(VoiceAssistantError):
    """Input rejected before any state was touched"""

    default_message = "Invalid request. Please check your input."
    status_code = 400


class ConfigurationError(VoiceAssistantError):
    """Required configuration (API key, URL) is missing"""

    default_message = "API key is not configured"
    status_code = 500


class UpstreamError(VoiceAssistantError):
    """The remote language model call failed"""

    default_message = "Failed to get response from AI"

    def __init__(self, status_code: int = 500, user_message: Optional[str] = None,
                 details: Optional[str] = None):
        self.status_code = status_code
        super().__init__(user_message, details)


class MicrophonePermissionError(VoiceAssistantError):
    """Speech capture permission was denied"""

    default_message = "Enable microphone access in Settings"


class CaptureError(VoiceAssistantError):
    """Speech capture failed for a reason other than permission"""

    default_message = "Voice recognition failed. Please try again."

    def __init__(self, code: str, user_message: Optional[str] = None):
        self.code = code
        super().__init__(user_message, details=code)


class StorageParseError(VoiceAssistantError):
    """A persisted record could not be decoded"""

    default_message = "Saved conversations could not be read and were reset"

    def __init__(self, key: str, details: Optional[str] = None):
        self.key = key
        super().__init__(details=details)


class ConversationNotFoundError(VoiceAssistantError):
    """No stored conversation has the requested id"""

    default_message = "Conversation not found"

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(details=conversation_id)


class PlaybackError(VoiceAssistantError):
    """The reply could not be spoken"""

    default_message = "Could not play the response"
