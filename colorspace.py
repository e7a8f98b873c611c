#!/usr/bin/env python3
"""
Color space conversions and perceptual distance.

RGB <-> LAB (sRGB, D65), hex and HSL helpers, and two ΔE flavours: a fast
Euclidean distance for the inner search loops and CIEDE2000 for the scores
shown to the user. Every function accepts a single color of shape (3,) or a
stack of shape (n, 3) and answers in the same shape.
"""

import math
import re
from typing import Optional

import numpy as np

from config import TEMPERATURE_MARGIN


MID_GRAY_LAB = np.array([50.0, 0.0, 0.0])  # Fallback for unusable input

# D65 reference white
XN, YN, ZN = 0.95047, 1.0, 1.08883

# CIE piecewise constants
EPSILON = 0.008856
KAPPA = 903.3

_HEX_PATTERN = re.compile(r'^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')


# =============================================================================
# RGB <-> LAB
# =============================================================================

def _as_rows(values) -> tuple[np.ndarray, bool]:
    """Coerce to a float (n, 3) array. Second value is True for a single color."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim == 1:
        return arr.reshape(1, 3), True
    return arr.reshape(-1, 3), False


def rgb_to_lab(rgb) -> np.ndarray:
    """Convert RGB (0-255) to LAB. Rows with NaN or bad shape become mid-gray."""
    try:
        rows, single = _as_rows(rgb)
    except (TypeError, ValueError):
        return MID_GRAY_LAB.copy()

    invalid = ~np.all(np.isfinite(rows), axis=1)
    rgb_norm = np.clip(np.nan_to_num(rows), 0, 255) / 255.0

    # Apply gamma correction
    mask = rgb_norm > 0.04045
    rgb_linear = np.where(mask, ((rgb_norm + 0.055) / 1.055) ** 2.4, rgb_norm / 12.92)

    # RGB to XYZ matrix
    r, g, b = rgb_linear[:, 0], rgb_linear[:, 1], rgb_linear[:, 2]
    x = r * 0.4124564 + g * 0.3575761 + b * 0.1804375
    y = r * 0.2126729 + g * 0.7151522 + b * 0.0721750
    z = r * 0.0193339 + g * 0.1191920 + b * 0.9503041

    x, y, z = x / XN, y / YN, z / ZN

    fx = np.where(x > EPSILON, np.cbrt(x), (KAPPA * x + 16) / 116)
    fy = np.where(y > EPSILON, np.cbrt(y), (KAPPA * y + 16) / 116)
    fz = np.where(z > EPSILON, np.cbrt(z), (KAPPA * z + 16) / 116)

    lab = np.column_stack([116 * fy - 16, 500 * (fx - fy), 200 * (fy - fz)])
    lab[invalid] = MID_GRAY_LAB

    return lab[0] if single else lab


def lab_to_rgb(lab) -> np.ndarray:
    """Convert LAB to RGB (0-255), clamped and rounded. Out-of-gamut input is clipped."""
    try:
        rows, single = _as_rows(lab)
    except (TypeError, ValueError):
        rows, single = MID_GRAY_LAB.reshape(1, 3), True

    invalid = ~np.all(np.isfinite(rows), axis=1)
    rows = rows.copy()
    rows[invalid] = MID_GRAY_LAB

    L, a, b = rows[:, 0], rows[:, 1], rows[:, 2]

    fy = (L + 16) / 116
    fx = a / 500 + fy
    fz = fy - b / 200

    x = np.where(fx**3 > EPSILON, fx**3, (116 * fx - 16) / KAPPA)
    y = np.where(L > KAPPA * EPSILON, ((L + 16) / 116) ** 3, L / KAPPA)
    z = np.where(fz**3 > EPSILON, fz**3, (116 * fz - 16) / KAPPA)

    x = x * XN
    z = z * ZN

    r = x * 3.2404542 - y * 1.5371385 - z * 0.4985314
    g = -x * 0.9692660 + y * 1.8760108 + z * 0.0415560
    b_out = x * 0.0556434 - y * 0.2040259 + z * 1.0572252

    rgb_linear = np.column_stack([r, g, b_out])
    mask = rgb_linear > 0.0031308
    rgb = np.where(mask, 1.055 * np.power(np.clip(rgb_linear, 0, None), 1/2.4) - 0.055, 12.92 * rgb_linear)

    out = np.rint(np.clip(rgb * 255, 0, 255)).astype(np.uint8)
    return out[0] if single else out


def coerce_lab(value) -> Optional[np.ndarray]:
    """Accept (L, a, b), an ndarray or a {'L', 'a', 'b'} mapping. None if unusable."""
    if value is None:
        return None
    if isinstance(value, dict):
        try:
            value = (value.get('L', value.get('l')), value['a'], value['b'])
        except KeyError:
            return None
    try:
        arr = np.asarray(value, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError):
        return None
    if arr.shape != (3,) or not np.all(np.isfinite(arr)):
        return None
    return arr


# =============================================================================
# Hex and HSL
# =============================================================================

def rgb_to_hex(rgb) -> str:
    """Convert RGB to '#rrggbb'. Channels are clamped and rounded."""
    r, g, b = (int(round(min(255.0, max(0.0, float(c))))) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_rgb(hex_str: str) -> Optional[tuple[int, int, int]]:
    """Parse '#rgb' or '#rrggbb'. Returns None for anything else."""
    if not isinstance(hex_str, str):
        return None
    match = _HEX_PATTERN.match(hex_str.strip())
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = ''.join(ch * 2 for ch in digits)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def lab_to_hex(lab) -> str:
    """Convert LAB to hex string."""
    rgb = lab_to_rgb(lab)
    if rgb.ndim > 1:
        rgb = rgb[0]
    return rgb_to_hex(rgb)


def lab_to_rgb_tuple(lab) -> tuple:
    """Convert LAB to RGB tuple."""
    rgb = lab_to_rgb(lab)
    if rgb.ndim > 1:
        rgb = rgb[0]
    return (int(rgb[0]), int(rgb[1]), int(rgb[2]))


def rgb_to_hsl(rgb) -> tuple[float, float, float]:
    """RGB (0-255) to HSL with hue in degrees and saturation/lightness in percent."""
    r, g, b = (min(255.0, max(0.0, float(c))) / 255.0 for c in rgb)
    high, low = max(r, g, b), min(r, g, b)
    lightness = (high + low) / 2

    if high == low:
        return 0.0, 0.0, lightness * 100  # achromatic

    d = high - low
    saturation = d / (2 - high - low) if lightness > 0.5 else d / (high + low)
    if high == r:
        hue = (g - b) / d + (6 if g < b else 0)
    elif high == g:
        hue = (b - r) / d + 2
    else:
        hue = (r - g) / d + 4

    return hue * 60.0, saturation * 100, lightness * 100


def hsl_to_rgb(hsl) -> tuple[int, int, int]:
    """HSL (degrees, percent, percent) back to RGB (0-255)."""
    h, s, l = hsl
    h = (float(h) % 360) / 360.0
    s = min(100.0, max(0.0, float(s))) / 100.0
    l = min(100.0, max(0.0, float(l))) / 100.0

    if s == 0:
        v = int(round(l * 255))
        return v, v, v

    q = l * (1 + s) if l < 0.5 else l + s - l * s
    p = 2 * l - q

    def hue_to_channel(t: float) -> float:
        t %= 1.0
        if t < 1/6:
            return p + (q - p) * 6 * t
        if t < 1/2:
            return q
        if t < 2/3:
            return p + (q - p) * (2/3 - t) * 6
        return p

    return tuple(int(round(hue_to_channel(h + offset) * 255)) for offset in (1/3, 0.0, -1/3))


def rgb_to_hsv(rgb) -> tuple[float, float, float]:
    """RGB (0-255) to HSV with hue in degrees and s, v in 0-1."""
    r, g, b = (min(255.0, max(0.0, float(c))) / 255.0 for c in rgb)
    high, low = max(r, g, b), min(r, g, b)
    d = high - low
    saturation = 0.0 if high == 0 else d / high

    hue = 0.0
    if d > 0:
        if high == r:
            hue = (g - b) / d + (6 if g < b else 0)
        elif high == g:
            hue = (b - r) / d + 2
        else:
            hue = (r - g) / d + 4
    return hue * 60.0, saturation, high


# =============================================================================
# Distance
# =============================================================================

def _scalar_or_array(values: np.ndarray):
    return float(values) if np.ndim(values) == 0 else values


def delta_e_76(lab1, lab2):
    """Euclidean ΔE in LAB. Broadcasts, so one target against (n, 3) paints works."""
    diff = np.asarray(lab1, dtype=np.float64) - np.asarray(lab2, dtype=np.float64)
    return _scalar_or_array(np.sqrt(np.sum(diff * diff, axis=-1)))


def delta_e_2000(lab1, lab2):
    """CIEDE2000 ΔE. Broadcasts like delta_e_76."""
    lab1 = np.asarray(lab1, dtype=np.float64)
    lab2 = np.asarray(lab2, dtype=np.float64)
    L1, a1, b1 = lab1[..., 0], lab1[..., 1], lab1[..., 2]
    L2, a2, b2 = lab2[..., 0], lab2[..., 1], lab2[..., 2]

    C1 = np.hypot(a1, b1)
    C2 = np.hypot(a2, b2)
    C_bar7 = ((C1 + C2) / 2) ** 7
    G = 0.5 * (1 - np.sqrt(C_bar7 / (C_bar7 + 25.0**7)))

    a1p = (1 + G) * a1
    a2p = (1 + G) * a2
    C1p = np.hypot(a1p, b1)
    C2p = np.hypot(a2p, b2)
    h1p = np.degrees(np.arctan2(b1, a1p)) % 360
    h2p = np.degrees(np.arctan2(b2, a2p)) % 360
    achromatic = (C1p * C2p) == 0

    dLp = L2 - L1
    dCp = C2p - C1p
    dhp = h2p - h1p
    dhp = np.where(dhp > 180, dhp - 360, dhp)
    dhp = np.where(dhp < -180, dhp + 360, dhp)
    dhp = np.where(achromatic, 0.0, dhp)
    dHp = 2 * np.sqrt(C1p * C2p) * np.sin(np.radians(dhp / 2))

    Lbp = (L1 + L2) / 2
    Cbp = (C1p + C2p) / 2
    hsum = h1p + h2p
    hbp = np.where(
        np.abs(h1p - h2p) > 180,
        np.where(hsum < 360, (hsum + 360) / 2, (hsum - 360) / 2),
        hsum / 2,
    )
    hbp = np.where(achromatic, hsum, hbp)

    T = (1
         - 0.17 * np.cos(np.radians(hbp - 30))
         + 0.24 * np.cos(np.radians(2 * hbp))
         + 0.32 * np.cos(np.radians(3 * hbp + 6))
         - 0.20 * np.cos(np.radians(4 * hbp - 63)))
    d_theta = 30 * np.exp(-(((hbp - 275) / 25) ** 2))
    Cbp7 = Cbp ** 7
    Rc = 2 * np.sqrt(Cbp7 / (Cbp7 + 25.0**7))
    Sl = 1 + (0.015 * (Lbp - 50) ** 2) / np.sqrt(20 + (Lbp - 50) ** 2)
    Sc = 1 + 0.045 * Cbp
    Sh = 1 + 0.015 * Cbp * T
    Rt = -np.sin(np.radians(2 * d_theta)) * Rc

    l_term = dLp / Sl
    c_term = dCp / Sc
    h_term = dHp / Sh
    total = l_term**2 + c_term**2 + h_term**2 + Rt * c_term * h_term
    return _scalar_or_array(np.sqrt(np.maximum(total, 0.0)))


def delta_e(lab1, lab2, perceptual: bool = True):
    """ΔE with a switch: CIEDE2000 when perceptual, Euclidean for hot loops."""
    return delta_e_2000(lab1, lab2) if perceptual else delta_e_76(lab1, lab2)


# =============================================================================
# Color Utilities
# =============================================================================

def compute_chroma(lab) -> float:
    """Compute chroma (saturation) from LAB coordinates."""
    return math.sqrt(lab[1]**2 + lab[2]**2)


def compute_hue(lab) -> float:
    """Compute hue angle (0-360 degrees) from LAB coordinates."""
    return math.degrees(math.atan2(lab[2], lab[1])) % 360


def circular_hue_distance(hue1: float, hue2: float) -> float:
    """Compute minimum angular distance between two hues (0-180)."""
    diff = abs(hue1 - hue2) % 360
    return min(diff, 360 - diff)


def color_temperature(lab, margin: float = TEMPERATURE_MARGIN) -> str:
    """'warm', 'cool' or 'neutral' from the sign of a+b (red/yellow vs green/blue)."""
    warmth = lab[1] + lab[2]
    coolness = -warmth
    if warmth > coolness + margin:
        return 'warm'
    if coolness > warmth + margin:
        return 'cool'
    return 'neutral'


def chroma_level(lab) -> str:
    chroma = compute_chroma(lab)
    if chroma > 60:
        return 'high'
    if chroma > 30:
        return 'medium'
    return 'low'


def value_level(L: float) -> str:
    if L <= 30:
        return 'dark'
    if L <= 70:
        return 'midtone'
    return 'light'


def generate_color_name(lab) -> str:
    """Generate a descriptive name from LAB coordinates."""
    L = lab[0]
    chroma = compute_chroma(lab)
    hue = compute_hue(lab)

    # Neutral colors
    if chroma < 8:
        if L < 15:
            return "Near-Black"
        elif L < 35:
            return "Dark Gray"
        elif L < 65:
            return "Gray"
        elif L < 85:
            return "Light Gray"
        else:
            return "Near-White"

    if hue < 30 or hue >= 330:
        hue_name = "Red"
    elif hue < 60:
        hue_name = "Orange"
    elif hue < 90:
        hue_name = "Yellow"
    elif hue < 150:
        hue_name = "Green"
    elif hue < 210:
        hue_name = "Cyan"
    elif hue < 270:
        hue_name = "Blue"
    else:
        hue_name = "Purple"

    if L < 20:
        lightness_mod = "Deep "
    elif L < 40:
        lightness_mod = "Dark "
    elif L < 60:
        lightness_mod = ""
    elif L < 80:
        lightness_mod = "Light "
    else:
        lightness_mod = "Pale "

    if chroma < 15:
        chroma_mod = "Grayish "
    elif chroma < 30:
        chroma_mod = "Muted "
    elif chroma > 50:
        chroma_mod = "Vivid "
    else:
        chroma_mod = ""

    return f"{lightness_mod}{chroma_mod}{hue_name}".strip()
