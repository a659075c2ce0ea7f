class BridgeError(RuntimeError):
    pass


class SignatureMismatchError(BridgeError):
    pass


class TokenRefreshError(BridgeError):
    pass


class UpstreamUnavailableError(BridgeError):
    pass


class SubscriptionRegistrationError(BridgeError):
    def __init__(self, detail: str, event_type: str | None = None) -> None:
        self.detail = detail
        self.event_type = event_type
        if event_type:
            super().__init__(f"{event_type}: {detail}")
        else:
            super().__init__(detail)
