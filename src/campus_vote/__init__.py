"""Campus Vote: OTP-gated anonymous election voting service."""

__version__ = "0.1.0"
