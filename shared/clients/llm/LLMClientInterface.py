from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.errors import InvalidArgumentError
from shared.helper.HelperConfig import HelperConfig

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional knowledge assistant. Answer the user's question based on the "
    "provided reference material. Cite the references you rely on by their number. "
    "If the references do not contain the information needed to answer, say so honestly "
    "instead of making up an answer."
)


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        prefix = self.get_client_type().upper()
        self.chat_model = helper_config.get_string_val(f"{prefix}_CHAT_MODEL", default=self._get_default_chat_model())
        self.system_prompt = helper_config.get_string_val(f"{prefix}_SYSTEM_PROMPT", default=DEFAULT_SYSTEM_PROMPT)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    def _get_default_chat_model(self) -> str | None:
        """Returns the model used when LLM_CHAT_MODEL is not set. None makes it mandatory."""
        return None

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict], model: str | None = None) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "user", "content": "..."}]).
            model (str | None): Model override, defaults to chat_model.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ################ PROMPT ##################
    def build_prompt(self, query: str, context: list[str]) -> str:
        """Build the user message from the retrieved chunk texts and the question.

        References are numbered from 1 in the given order and separated by a blank line.

        Example:
            References:
            [1] first chunk

            [2] second chunk

            Question: what is covered?
        """
        if context:
            references = "\n\n".join(f"[{number}] {content}" for number, content in enumerate(context, start=1))
            reference_block = f"References:\n{references}\n\n"
        else:
            reference_block = "References: none\n\n"
        return f"{reference_block}Question: {query}"

    def build_messages(self, query: str, context: list[str]) -> list[dict]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.build_prompt(query, context)},
        ]

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the assistant reply text from a raw chat API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str: The assistant reply text.

        Raises:
            ExternalServiceError: If the response holds no reply. Not retried.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_chat_request(self, body: dict) -> dict:
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=body,
            raise_on_error=True,
        )
        return self.parse_json(response)

    async def do_chat(self, messages: list[dict], model: str | None = None) -> str:
        """Send a chat/completion request and return the assistant reply text.

        Transient failures are retried according to the client's retry policy.

        Args:
            messages (list[dict]): OpenAI-format messages.
            model (str | None): Model override, defaults to chat_model.

        Returns:
            str: The assistant reply text.

        Raises:
            ExternalServiceError: If the backend keeps failing or returns no reply.
        """
        body = self.get_chat_payload(messages, model=model)
        response_data = await self.do_with_retry(
            lambda: self._do_chat_request(body),
            description="chat completion",
        )
        return self.extract_chat_response(response_data)

    async def do_generate_answer(self, query: str, context: list[str], model: str | None = None) -> str:
        """Generate an answer to query grounded on the given chunk texts.

        Args:
            query (str): The user question, must not be blank.
            context (list[str]): Retrieved chunk texts in ranking order, may be empty.
            model (str | None): Model override for this call.

        Returns:
            str: The generated answer.

        Raises:
            InvalidArgumentError: If the query is blank.
            ExternalServiceError: If generation fails.
        """
        if query is None or not query.strip():
            raise InvalidArgumentError("Query must not be blank.")
        context = context or []
        self.logging.debug(
            "Generating answer with model '%s' from %d reference(s).",
            model or self.chat_model, len(context),
        )
        return await self.do_chat(self.build_messages(query, context), model=model)
