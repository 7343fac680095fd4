from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.errors import ExternalServiceError, InvalidArgumentError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        prefix = self.get_client_type().upper()
        self.embed_model = helper_config.get_string_val(f"{prefix}_MODEL", default=self._get_default_model())
        self.embed_dimension = helper_config.get_int_val(f"{prefix}_DIMENSION", default=1536, minimum=1)
        self.embed_distance = helper_config.get_string_val(f"{prefix}_DISTANCE", default="Cosine")

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_vectors(self, vectors: list[list[float]], expected_count: int) -> None:
        """Check count and dimension of the vectors returned by the backend.

        Raises:
            ExternalServiceError: If the number of vectors differs from the number of inputs
                or a vector does not have exactly embed_dimension entries.
        """
        if len(vectors) != expected_count:
            raise ExternalServiceError(
                f"Embedding backend '{self.get_engine_name()}' returned {len(vectors)} vector(s) for {expected_count} input(s).",
                service=self.get_client_type(),
            )
        for index, vector in enumerate(vectors):
            if len(vector) != self.embed_dimension:
                raise ExternalServiceError(
                    f"Embedding backend '{self.get_engine_name()}' returned a vector of dimension {len(vector)} "
                    f"at position {index}, expected {self.embed_dimension}.",
                    service=self.get_client_type(),
                )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    def _get_default_model(self) -> str | None:
        """
        Returns the model used when EMBED_MODEL is not set. None makes EMBED_MODEL mandatory.
        """
        return None

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}, already ordered
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]}, needs sorting

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            TransientServiceError: If the response carries no embeddings at all.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_embed_request(self, texts: list[str]) -> list[list[float]]:
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=self.get_embed_payload(texts),
            raise_on_error=True,
        )
        return self.extract_embeddings_from_response(self.parse_json(response))

    async def do_embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts with a single provider call.

        Transient failures are retried according to the client's retry policy.

        Args:
            texts (list[str]): Non-empty list of non-blank texts.

        Returns:
            list[list[float]]: One vector per input, in input order.

        Raises:
            InvalidArgumentError: If the list is empty or contains a blank text.
            ExternalServiceError: If the provider keeps failing, answers with a permanent
                error, or returns vectors with the wrong count or dimension.
        """
        if not texts:
            raise InvalidArgumentError("Text list to embed must not be empty.")
        for index, text in enumerate(texts):
            if text is None or not text.strip():
                raise InvalidArgumentError(f"Text to embed at position {index} must not be blank.")

        vectors = await self.do_with_retry(
            lambda: self._do_embed_request(texts),
            description=f"embedding request ({len(texts)} text(s))",
        )
        self.validate_vectors(vectors, expected_count=len(texts))
        self.logging.debug("Embedded %d text(s) with model '%s'.", len(texts), self.embed_model)
        return vectors

    async def do_embed(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            InvalidArgumentError: If the text is blank.
            ExternalServiceError: See do_embed_batch().
        """
        if text is None or not text.strip():
            raise InvalidArgumentError("Text to embed must not be blank.")
        vectors = await self.do_embed_batch([text])
        return vectors[0]
