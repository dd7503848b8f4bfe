"""Magic Home Models Database."""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class LEDENETModel:
    model_num: int  # The model number aka byte 1 of the state response
    models: List[str]  # The model names from discovery
    description: str  # Description of the model ({type} {color_mode})
    apply_masks: bool  # Levels must carry a write mask (colors or whites)
    cold_white_support: bool  # Levels carry a separate cold white byte


UNKNOWN_MODEL = "Unknown Model"

MODELS = [
    LEDENETModel(
        model_num=0x25,
        # 'AK001-ZJ200' == v2 - some devices have RF remote support (the mini ones)
        models=["HF-LPB100-ZJ200", "AK001-ZJ200"],
        description="Controller RGB/WW/CW",
        apply_masks=True,
        cold_white_support=False,
    ),
    LEDENETModel(
        model_num=0x35,
        # 'AK001-ZJ2101' and 'AK001-ZJ2104' is v7
        # 'AK001-ZJ2145' is v8
        # 'AK001-ZJ2146' is v9
        # 'AK001-ZJ2147' is v9.7 (with RF remote control support)
        models=[
            "AK001-ZJ2101",
            "AK001-ZJ2104",
            "AK001-ZJ2145",
            "AK001-ZJ2146",
            "AK001-ZJ2147",
        ],
        description="Bulb RGBCW",
        apply_masks=True,
        cold_white_support=True,
    ),
    LEDENETModel(
        model_num=0x44,
        # v8 - AK001-ZJ200 aka old flux
        # v9 - AK001-ZJ210
        models=["AK001-ZJ200", "AK001-ZJ210"],
        description="Bulb RGBW",
        apply_masks=True,
        cold_white_support=False,
    ),
]

MODEL_MAP: Dict[int, LEDENETModel] = {model.model_num: model for model in MODELS}


def get_model(model_num: int) -> Optional[LEDENETModel]:
    """Return the LEDENETModel for the model_num if it has known quirks."""
    return MODEL_MAP.get(model_num)


def is_known_model(model_num: int) -> bool:
    """Return true of the model is known."""
    return model_num in MODEL_MAP


def get_model_description(model_num: int) -> str:
    """Return the description for a model."""
    model = get_model(model_num)
    return model.description if model else UNKNOWN_MODEL
