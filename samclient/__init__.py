"""Client for the I2P SAM v3 bridge: messages, connections, sessions and the eepget command."""

__version__ = "0.1.0"
__all__ = ["message", "connection", "session", "eepget"]