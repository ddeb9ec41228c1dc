"""Control TMC2209 stepper motor drivers over their single-wire UART interface."""

__version__ = "0.1.0"
__all__ = ["cli", "datagram", "driver", "registers"]