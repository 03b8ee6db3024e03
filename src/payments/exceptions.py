class PaymentProcessorError(Exception):
    """Raised when the payment processor cannot be reached or rejects a request.

    Attributes:
        status_code: HTTP status returned to our API caller. 503 when the processor is unreachable,
            400 when it rejected the request.
        processor_status: HTTP status returned by the processor, if any.
    """

    def __init__(self, message: str, status_code: int = 503, processor_status: int | None = None) -> None:
        """Initialize the error.

        Args:
            message: Error message describing what went wrong.
            status_code: HTTP status for the API response.
            processor_status: HTTP status code from the processor, if available.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.processor_status = processor_status
