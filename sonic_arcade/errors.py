class ArcadeError(Exception):
    """Base class for every failure raised by the bot."""


class ConfigError(ArcadeError):
    pass


class WalletError(ArcadeError):
    pass


class TransportError(ArcadeError):
    """Non-2xx HTTP response or connection failure."""

    def __init__(self, status, reason):
        self.status = status
        self.reason = reason
        super().__init__(f"{status} - {reason}")


class SessionCreationError(ArcadeError):
    pass


class NonceError(ArcadeError):
    pass


class PermitFlowError(ArcadeError):
    pass


class PermitSubmissionError(ArcadeError):
    pass


class RefundError(ArcadeError):
    pass


class ReiterateError(ArcadeError):
    pass


class GamePlayError(ArcadeError):
    def __init__(self, game, message):
        self.game = game
        self.backend_message = message
        super().__init__(f"Failed to play game: [{game}], error: {message}")


class DeadlineExceeded(ArcadeError):
    pass
