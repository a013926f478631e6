"""
合成功能模組

提供漸層疊加與標誌合成
"""

from .compositor import (
    Compositor,
    LogoLayout,
    RenderedImage,
    build_gradient_overlay,
    decode_source,
    encode_png,
    fit_logo,
    gradient_ramp,
    logo_origin,
    publish,
)
from .logo import default_logo, load_logo, resolve_logo


__all__ = [
    "Compositor",
    "LogoLayout",
    "RenderedImage",
    "build_gradient_overlay",
    "decode_source",
    "default_logo",
    "encode_png",
    "fit_logo",
    "gradient_ramp",
    "load_logo",
    "logo_origin",
    "publish",
    "resolve_logo",
]
