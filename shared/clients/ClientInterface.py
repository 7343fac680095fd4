from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

import httpx
from httpx._types import QueryParamTypes, RequestContent

from shared.exceptions.errors import ExternalServiceError, TransientServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.RetryPolicy import RetryPolicy
from shared.models.config import EnvConfig

# non-5xx statuses that are retried
TRANSIENT_STATUS_CODES = {408, 425, 429}


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self.retry_policy = RetryPolicy.from_config(
            helper_config,
            prefix=self.get_client_type(),
            default_max_retries=self._get_default_max_retries(),
        )

        # client and config
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "rag"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "qdrant"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "qdrant"
        """
        pass

    def _get_default_max_retries(self) -> int:
        """
        Returns the number of retries used when {TYPE}_MAX_RETRIES is not set.
        """
        return 3

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all engine-scoped configurations of the client.

        Returns:
            list[EnvConfig]: A list containing the details of each configuration key.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "RAG_QDRANT_API_KEY"
        """
        key_prefix = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}"
        return f"{key_prefix}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of an engine-scoped configuration key.

        Args:
            raw_key (str): The raw configuration key name, e.g. "BASE_URL"
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool", "list")
        """
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        else:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the client backend server, if an API key is set.

        Returns:
            dict: A dictionary containing the auth data
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the client backend server from env variables

        Returns:
            str: The base URL of the client backend server (e.g. "http://localhost:6333")
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests (e.g. "/healthz").
        """
        pass

    ##########################################
    ############### RESPONSES ################
    ##########################################

    def parse_json(self, response: httpx.Response) -> dict:
        """Decode a JSON object body.

        Raises:
            TransientServiceError: If the body is not a JSON object. A truncated or
                garbled body is treated like a flaky backend and may be retried.
        """
        try:
            data = response.json()
        except ValueError as exc:
            raise TransientServiceError(
                f"{self.get_client_type().upper()} backend '{self.get_engine_name()}' returned malformed JSON: {exc}",
                service=self.get_client_type(),
                status_code=response.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise TransientServiceError(
                f"{self.get_client_type().upper()} backend '{self.get_engine_name()}' returned {type(data).__name__} instead of a JSON object.",
                service=self.get_client_type(),
                status_code=response.status_code,
            )
        return data

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Check if the client backend is healthy by sending a test request.

        Returns:
            httpx.Response: The response from the healthcheck request.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    async def do_with_retry(self, operation: Callable[[], Awaitable[Any]], description: str) -> Any:
        """Run operation under the retry policy of this client.

        Args:
            operation: Zero-argument coroutine factory performing one attempt.
            description: Name of the call for logs and errors.

        Raises:
            ExternalServiceError: If all attempts failed or the backend answered with a permanent error.
        """
        return await self.retry_policy.run(operation, description=f"{self.get_engine_name()} {description}")

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the HTTP client.

        Args:
            transport: Optional custom transport, e.g. httpx.MockTransport in tests.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client and any other resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        endpoint: str = "",
        json: dict | None = None,
        content: RequestContent | None = None,
        params: QueryParamTypes | None = None,
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one HTTP request to the client backend, without retrying.

        Args:
            method: HTTP method.
            endpoint: Path below the base URL, leading slash optional.
            json: JSON body. Ignored when content is given.
            content: Pre-encoded body; set Content-Type via additional_headers.
            params: URL query parameters.
            additional_headers: Headers merged over the auth header.
            raise_on_error: Raise instead of returning a non-2xx response.

        Raises:
            RuntimeError: If boot() was not called.
            httpx.TransportError: On connection failures and timeouts.
            TransientServiceError: On 5xx, 408, 425 or 429 (when raise_on_error is True).
            ExternalServiceError: On any other non-2xx status (when raise_on_error is True).
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        path = endpoint.strip()
        if path and not path.startswith("/"):
            path = "/" + path
        url = self._get_base_url().rstrip("/") + path
        headers = {**self._get_auth_header(), **(additional_headers or {})}

        if content is not None:
            response = await self._client.request(method, url, content=content, params=params, headers=headers)
        else:
            response = await self._client.request(method, url, json=json, params=params, headers=headers)

        if response.is_success or not raise_on_error:
            return response

        status = response.status_code
        # body is logged truncated and never put into the exception message
        self.logging.error("%s %s -> %d: %s", method, url, status, response.text[:200])
        transient = status >= 500 or status in TRANSIENT_STATUS_CODES
        error_class = TransientServiceError if transient else ExternalServiceError
        raise error_class(
            f"{self.get_client_type().upper()} backend '{self.get_engine_name()}' answered "
            f"{method} {path or '/'} with status {status}",
            service=self.get_client_type(),
            status_code=status,
        )
