from dataclasses import dataclass, field
import logging
from typing import Optional

from .const import DEFAULT_COMMAND_TIMEOUT
from .models_db import LEDENETModel

_LOGGER = logging.getLogger(__name__)


@dataclass
class AckOptions:
    """Which command categories wait for the controller to reply."""

    power: bool = True
    color: bool = True
    pattern: bool = True
    custom_pattern: bool = True

    @classmethod
    def from_mask(cls, mask: int) -> "AckOptions":
        return cls(
            power=bool(mask & 0x01),
            color=bool(mask & 0x02),
            pattern=bool(mask & 0x04),
            custom_pattern=bool(mask & 0x08),
        )


@dataclass
class ControlOptions:
    """Per controller options.

    apply_masks and cold_white_support may be switched on by the
    controller itself once a state query reveals the device type.
    """

    ack: AckOptions = field(default_factory=AckOptions)
    # Set the mask byte in set_color / set_warm_white / set_whites
    apply_masks: bool = False
    # Send the level change variant that also carries the cold white value
    cold_white_support: bool = False
    # Seconds after which an acknowledged command is failed, None to disable
    command_timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT
    # Seconds after which a connection attempt is abandoned, None to disable
    connect_timeout: Optional[float] = None
    # Log every received chunk at info level
    log_all_received: bool = False

    def apply_model_quirks(self, model: LEDENETModel) -> None:
        """Enable the options a model requires, never disabling any."""
        if model.apply_masks and not self.apply_masks:
            _LOGGER.debug("Enabling masks for model 0x%02X", model.model_num)
            self.apply_masks = True
        if model.cold_white_support and not self.cold_white_support:
            _LOGGER.debug(
                "Enabling cold white support for model 0x%02X", model.model_num
            )
            self.cold_white_support = True
