class WebhookError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class RequestRejectedError(WebhookError):
    """Errors LINE gets to see, rendered as {"error": message} with status_code."""

    def __init__(self, message: str, status_code: int = 400):
        self.status_code = status_code
        super().__init__(message)


class InvalidSignatureError(RequestRejectedError):
    def __init__(self):
        super().__init__("Unauthorized", status_code=401)


class InvalidPayloadError(RequestRejectedError):
    def __init__(self):
        super().__init__("Invalid payload", status_code=400)


class ProcessorNotificationError(WebhookError):
    """Downstream processor call failed. Logged by the notifier, never returned to LINE."""

    def __init__(self, message: str = "Processor notification failed"):
        super().__init__(message)
