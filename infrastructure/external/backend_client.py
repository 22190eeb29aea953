"""
Backend API client adapter.
Handles the JSON-over-HTTP contract of the chat backend: auth, chat,
conversation history, deletion and retention cleanup.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import httpx

from infrastructure.config.settings import AppConfig, get_config
from infrastructure.errors import AuthError, NotFoundError, TransportError
from infrastructure.monitoring.logging_service import get_logger, log_backend_call
from infrastructure.resilience.retry_service import CircuitBreaker, get_retry_service


@dataclass
class AuthResult:
    """Successful signup/login response"""
    user_id: str
    username: str


@dataclass
class ChatReply:
    """Successful chat response"""
    reply: str
    conversation_id: str
    emotion: Optional[str] = None
    confidence: Optional[float] = None
    needs_escalation: bool = False


class BackendClient:
    """
    Adapter for the chat backend REST API.
    Every call goes through the backend circuit breaker and is bounded by
    the configured timeout, so a hung request fails instead of blocking.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        self.logger = get_logger(__name__)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = http_client or httpx.Client(timeout=timeout)
        self.circuit_breaker = circuit_breaker or get_retry_service().get_backend_circuit_breaker()
        self.logger.debug(f"BackendClient initialized with base_url={self.base_url}, timeout={timeout}")

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None) -> 'BackendClient':
        config = config or get_config()
        return cls(config.api.base_url, timeout=config.api.timeout_seconds)

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    # ==================== transport ====================

    def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Execute a request and decode the JSON body, raising TransportError on any failure"""
        url = f"{self.base_url}{path}"

        def call() -> Dict[str, Any]:
            with log_backend_call(self.logger, method, path) as outcome:
                try:
                    response = self.client.request(method, url, json=json_data, params=params, timeout=self.timeout)
                except httpx.TimeoutException as e:
                    raise TransportError(f"Request timed out after {self.timeout:.0f}s") from e
                except httpx.HTTPError as e:
                    raise TransportError(f"Backend unreachable: {e}") from e

                outcome["status_code"] = response.status_code
                body = self._decode_body(response)

                if not response.is_success:
                    detail = body.get("error") or body.get("message") or f"HTTP {response.status_code}"
                    if response.status_code == 404 and path.startswith("/conversations/"):
                        raise NotFoundError(str(detail))
                    raise TransportError(str(detail), status_code=response.status_code)

                return body

        return self.circuit_breaker.execute(call)

    def _decode_body(self, response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            if response.is_success:
                raise TransportError("Malformed response from backend") from e
            return {}
        if not isinstance(body, dict):
            if response.is_success:
                raise TransportError("Unexpected response shape from backend")
            return {}
        return body

    def _auth_request(self, path: str, payload: Dict[str, Any]) -> AuthResult:
        try:
            data = self._request("POST", path, json_data=payload)
        except TransportError as e:
            # A status code means the backend answered and rejected us
            if e.status_code is not None:
                raise AuthError(e.message) from e
            raise

        user_id = data.get("user_id")
        username = data.get("username")
        if user_id in (None, "") or not username:
            raise TransportError("Authentication response missing user identity")
        return AuthResult(user_id=str(user_id), username=str(username))

    # ==================== auth ====================

    def signup(self, username: str, password: str, email: Optional[str] = None) -> AuthResult:
        payload: Dict[str, Any] = {"username": username, "password": password}
        if email:
            payload["email"] = email
        return self._auth_request("/auth/signup", payload)

    def login(self, username: str, password: str) -> AuthResult:
        return self._auth_request("/auth/login", {"username": username, "password": password})

    # ==================== chat ====================

    def send_message(self, message: str, user_id: str, conversation_id: Optional[str]) -> ChatReply:
        """POST /chat; conversation_id is null for the first message of a new chat"""
        data = self._request("POST", "/chat", json_data={
            "message": message,
            "user_id": user_id,
            "conversation_id": conversation_id
        })

        reply = data.get("reply")
        new_conversation_id = data.get("conversation_id")
        if not isinstance(reply, str) or new_conversation_id in (None, ""):
            raise TransportError("Chat response missing reply or conversation id")

        confidence = data.get("confidence")
        return ChatReply(
            reply=reply,
            conversation_id=str(new_conversation_id),
            emotion=data.get("emotion") or None,
            confidence=float(confidence) if isinstance(confidence, (int, float)) else None,
            needs_escalation=bool(data.get("needs_escalation", False))
        )

    # ==================== conversations ====================

    def list_conversations(self, user_id: str) -> List[Dict[str, Any]]:
        data = self._request("GET", "/conversations", params={"user_id": user_id})
        conversations = data.get("conversations")
        if not isinstance(conversations, list):
            raise TransportError("Conversation list response missing 'conversations'")
        return conversations

    def get_messages(self, conversation_id: str) -> List[Dict[str, Any]]:
        data = self._request("GET", f"/conversations/{conversation_id}/messages")
        messages = data.get("messages")
        if not isinstance(messages, list):
            raise TransportError("Message history response missing 'messages'")
        return messages

    def delete_conversation(self, conversation_id: str) -> None:
        self._request("DELETE", f"/conversations/{conversation_id}")

    def cleanup_conversations(self, user_id: str, days: int) -> int:
        """Ask the backend to delete conversations older than `days`; returns the deleted count"""
        data = self._request("POST", "/conversations/cleanup", params={"user_id": user_id, "days": days})
        deleted = data.get("deleted_count", 0)
        return deleted if isinstance(deleted, int) else 0

    def end_conversation(self, conversation_id: str) -> None:
        self._request("POST", f"/conversations/{conversation_id}/end")

    def health_check(self) -> Dict[str, Any]:
        return self._request("GET", "/health")
