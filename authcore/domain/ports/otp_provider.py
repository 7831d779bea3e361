from typing import Protocol


class OtpAlgorithmPort(Protocol):
    def verify(self, secret: str, code: str) -> bool:
        """True if `code` is a currently acceptable TOTP for `secret`."""
