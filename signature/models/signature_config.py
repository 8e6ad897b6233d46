# signature/models/signature_config.py
from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.config.config_service import ConfigService


@dataclass(frozen=True)
class SignatureConfig:
    """
    Capture and placement tuning, read from the ``[Signature]`` config section.
    Pixel values refer to the capture surface or the rendered page canvas.
    """
    # capture surface
    capture_width: int = 560
    capture_height: int = 200
    crop_padding: int = 8

    # pen emulation
    stroke_min_width: float = 1.0
    stroke_max_width: float = 3.5
    smoothing_alpha: float = 0.7
    velocity_filter_weight: float = 0.7

    # placement
    default_box_width_px: float = 170.0
    default_box_height_px: float = 70.0
    default_margin_pct: float = 0.1
    min_box_width_px: float = 40.0
    resize_handle_px: float = 10.0
    delete_button_px: float = 16.0

    @classmethod
    def from_config(cls, cfg: "ConfigService") -> "SignatureConfig":
        s = cfg.signature
        return cls(
            capture_width=int(s.capture_width),
            capture_height=int(s.capture_height),
            crop_padding=int(s.crop_padding),
            stroke_min_width=float(s.stroke_min_width),
            stroke_max_width=float(s.stroke_max_width),
            smoothing_alpha=float(s.smoothing_alpha),
            velocity_filter_weight=float(s.velocity_filter_weight),
            default_box_width_px=float(s.default_box_width_px),
            default_box_height_px=float(s.default_box_height_px),
            default_margin_pct=float(s.default_margin_pct),
            min_box_width_px=float(s.min_box_width_px),
            resize_handle_px=float(s.resize_handle_px),
            delete_button_px=float(s.delete_button_px),
        )
