"""
Turn orchestrator - drives one voice turn at a time.

    Idle -> Capturing -> Thinking -> Speaking -> Idle (-> Capturing when auto-listen is on)

The user message is stored before the model is called and the assistant
message is stored before playback starts. All methods run on the event loop
thread; the state guard, not a lock, keeps turns from overlapping.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from config.app_config import VoiceConfig, get_config
from services.ai_service.model_proxy import UNEXPECTED_FAILURE, ModelProxy
from services.chat_service.conversation_store import ConversationStore
from services.chat_service.language import detect_language
from services.chat_service.models import Conversation, Message, MessageRole
from services.errors import (
    CaptureError,
    MicrophonePermissionError,
    PlaybackError,
    UpstreamError,
    ValidationError,
    VoiceAssistantError,
)
from services.voice_service.adapters import (
    PERMISSION_ERROR_CODES,
    SILENT_ERROR_CODES,
    CaptureAdapter,
    PlaybackAdapter,
)
from utils.logging_config import ErrorTracker, get_logger, log_turn_transition, log_user_interaction

SAVE_FAILED = "Could not save the conversation"
EMPTY_TRANSCRIPT = "Transcript is empty"
TURN_IN_PROGRESS = "Please wait for the current response to finish"


class TurnState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    THINKING = "thinking"
    SPEAKING = "speaking"


@dataclass(frozen=True)
class Notification:
    """Something the interface should show the user"""
    level: str
    message: str
    persistent: bool = False


@dataclass
class TurnResult:
    """Outcome of ``handle_transcript``"""
    user_message: Optional[Message] = None
    assistant_message: Optional[Message] = None
    error: Optional[VoiceAssistantError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.assistant_message is not None


StateListener = Callable[[TurnState, TurnState], None]


class TurnOrchestrator:
    """
    Coordinates capture, the conversation store, the model proxy and playback.

    ``permission_granted`` is ``None`` until the capture side has either
    delivered a transcript (granted) or reported a permission error (denied).
    """

    def __init__(self, store: ConversationStore, proxy: ModelProxy,
                 capture: CaptureAdapter, playback: PlaybackAdapter,
                 voice_config: Optional[VoiceConfig] = None, model: Optional[str] = None,
                 notify: Optional[Callable[[Notification], None]] = None,
                 error_tracker: Optional[ErrorTracker] = None):
        self.logger = get_logger(__name__)
        self.store = store
        self.proxy = proxy
        self.capture = capture
        self.playback = playback
        self.voice_config = voice_config or get_config().voice
        self.model = model
        self.error_tracker = error_tracker or ErrorTracker(self.logger)

        self.notifications: List[Notification] = []
        self._notify_sink = notify
        self._listeners: List[StateListener] = []

        self.auto_listen = False
        self.permission_granted: Optional[bool] = None
        self._state = TurnState.IDLE
        self._turn_task: Optional[asyncio.Task] = None
        self._rearm_handle: Optional[asyncio.TimerHandle] = None

        self.capture.subscribe(self._on_transcript, self.handle_capture_error)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state in (TurnState.THINKING, TurnState.SPEAKING)

    @property
    def active_turn(self) -> Optional[asyncio.Task]:
        return self._turn_task

    def add_state_listener(self, listener: StateListener):
        self._listeners.append(listener)

    def remove_state_listener(self, listener: StateListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_state(self, new_state: TurnState):
        old_state = self._state
        if new_state is old_state:
            return
        self._state = new_state
        log_turn_transition(self.logger, old_state.value, new_state.value)
        for listener in list(self._listeners):
            listener(old_state, new_state)

    def _notify(self, notification: Notification):
        self.notifications.append(notification)
        if self._notify_sink is not None:
            self._notify_sink(notification)

    def drain_notifications(self) -> List[Notification]:
        pending, self.notifications = self.notifications, []
        return pending

    def _report(self, error: VoiceAssistantError, context: str, level: str = "error", **extra):
        self.error_tracker.track_error(error, context, **extra)
        self._notify(Notification(level, error.user_message))

    # ------------------------------------------------------------------
    # Capture control
    # ------------------------------------------------------------------

    def grant_permission(self):
        self.permission_granted = True

    def deny_permission(self):
        """Microphone access was refused: stop listening for good and say so"""
        self.permission_granted = False
        self.auto_listen = False
        self._cancel_rearm()
        error = MicrophonePermissionError()
        self.logger.warning("Microphone permission denied, auto-listen disabled")
        self._notify(Notification("error", error.user_message, persistent=True))

    def start_listening(self) -> bool:
        """
        Arm capture

        Returns:
            True if capture is (now) active
        """
        if self.busy:
            self.logger.debug(f"Not arming capture while {self._state.value}")
            return False
        if self.permission_granted is False:
            self._notify(Notification("error", MicrophonePermissionError().user_message, persistent=True))
            return False
        if self._state is TurnState.CAPTURING and self.capture.is_listening:
            return True

        self._cancel_rearm()
        self._set_state(TurnState.CAPTURING)
        # A synchronous start failure comes back through handle_capture_error
        self.capture.start()
        return self._state is TurnState.CAPTURING

    def stop_listening(self):
        self._cancel_rearm()
        if self._state is TurnState.CAPTURING:
            self.capture.stop()
            self._set_state(TurnState.IDLE)

    def toggle_listening(self) -> bool:
        """
        Microphone button: switches auto-listen on or off

        Returns:
            Whether auto-listen is now enabled
        """
        if self.auto_listen or self._state is TurnState.CAPTURING:
            self.auto_listen = False
            self.stop_listening()
        else:
            self.auto_listen = True
            # While a turn is running, capture re-arms once it has been spoken
            if not self.busy and not self.start_listening() and self.permission_granted is False:
                self.auto_listen = False

        log_user_interaction(self.logger, "microphone_toggle", auto_listen=self.auto_listen)
        return self.auto_listen

    def handle_capture_error(self, code: str):
        if code in PERMISSION_ERROR_CODES:
            self.deny_permission()
        elif code in SILENT_ERROR_CODES:
            self.logger.debug(f"Capture ended without speech: {code}")
        else:
            self._report(CaptureError(code), "speech capture", level="warning", code=code)

        if self._state is TurnState.CAPTURING:
            self._set_state(TurnState.IDLE)

    def _on_transcript(self, text: str):
        if self.permission_granted is None:
            self.permission_granted = True
        if self.busy:
            self.logger.debug("Dropping transcript received during an active turn")
            return
        self._turn_task = asyncio.get_running_loop().create_task(self.handle_transcript(text))

    def _cancel_rearm(self):
        if self._rearm_handle is not None:
            self._rearm_handle.cancel()
            self._rearm_handle = None

    def _rearm(self):
        self._rearm_handle = None
        if self.auto_listen and self.permission_granted and self._state is TurnState.IDLE:
            self.start_listening()

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def handle_transcript(self, text: str) -> TurnResult:
        """
        Run one turn for a finalized transcript

        Args:
            text: What the user said (or typed)

        Returns:
            TurnResult; errors are reported as notifications, never raised
        """
        text = (text or "").strip()
        if not text:
            self.logger.debug("Ignoring empty transcript")
            return TurnResult(error=ValidationError(EMPTY_TRANSCRIPT))
        if self.busy:
            self.logger.info("Rejected transcript while a turn is in progress")
            return TurnResult(error=ValidationError(TURN_IN_PROGRESS))

        self._turn_task = asyncio.current_task()
        try:
            return await self._run_turn(text)
        finally:
            if self._turn_task is asyncio.current_task():
                self._turn_task = None

    async def _run_turn(self, text: str) -> TurnResult:
        if self._state is TurnState.CAPTURING:
            self.capture.stop()
        self._cancel_rearm()

        language = detect_language(text)
        user_message = Message(role=MessageRole.USER, content=text, language=language)

        try:
            conversation = self.store.append_message(user_message)
        except Exception as e:
            self._set_state(TurnState.IDLE)
            error = VoiceAssistantError(SAVE_FAILED, details=str(e))
            self._report(error, "store user message")
            return TurnResult(error=error)

        self._set_state(TurnState.THINKING)
        history = [message.to_chat_message() for message in conversation.messages]

        try:
            response = await self.proxy.complete(history, model=self.model)
        except VoiceAssistantError as e:
            self._set_state(TurnState.IDLE)
            self._report(e, "model call", conversation_id=conversation.id)
            return TurnResult(user_message=user_message, error=e)
        except Exception as e:
            self._set_state(TurnState.IDLE)
            error = UpstreamError(500, UNEXPECTED_FAILURE, str(e) or type(e).__name__)
            self._report(error, "model call", conversation_id=conversation.id)
            return TurnResult(user_message=user_message, error=error)

        # Reply keeps the user's language so playback picks the same voice
        assistant_message = Message(role=MessageRole.ASSISTANT, content=response.message, language=language)
        try:
            self.store.append_message(assistant_message)
        except Exception as e:
            self._set_state(TurnState.IDLE)
            error = VoiceAssistantError(SAVE_FAILED, details=str(e))
            self._report(error, "store assistant message")
            return TurnResult(user_message=user_message, error=error)

        self._set_state(TurnState.SPEAKING)
        playback_error: Optional[VoiceAssistantError] = None
        try:
            await self.playback.speak(assistant_message.content, language)
        except VoiceAssistantError as e:
            playback_error = e
        except Exception as e:
            playback_error = PlaybackError(details=str(e) or type(e).__name__)

        if playback_error is not None:
            self._report(playback_error, "playback", level="warning")

        self._finish_turn()
        return TurnResult(user_message=user_message, assistant_message=assistant_message, error=playback_error)

    def _finish_turn(self):
        self._set_state(TurnState.IDLE)
        if self.auto_listen and self.permission_granted:
            loop = asyncio.get_running_loop()
            self._rearm_handle = loop.call_later(self.voice_config.auto_listen_delay_seconds, self._rearm)

    async def close(self) -> Conversation:
        """
        Abort whatever is running and start a fresh conversation

        Returns:
            The new empty conversation
        """
        self.auto_listen = False
        self.permission_granted = None
        self._cancel_rearm()
        self.capture.stop()
        self.playback.cancel()

        task = self._turn_task
        self._turn_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

        self._set_state(TurnState.IDLE)
        conversation = self.store.create_conversation()
        log_user_interaction(self.logger, "new_conversation", conversation_id=conversation.id)
        return conversation
