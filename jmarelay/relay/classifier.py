"""File name classification for JMA seismic bulletins.

JMA bulletin file names embed the data type code (e.g. ``VXSE53``), which
is enough to pick a converter and a sink route without opening the file.
"""

import re

from jmarelay.schemas.relay import Classification

# VXSE51 seismic intensity flash
# VXSE52 hypocentre report
# VXSE53 hypocentre and seismic intensity report
QUAKE_PATTERN = re.compile(r"VXSE5[123]")

# VTSE41 tsunami warning / advisory / forecast
TSUNAMI_PATTERN = re.compile(r"VTSE41")

# VXSE43 earthquake early warning (warning)
# VXSE44 earthquake early warning (warning and forecast)
EARLY_WARNING_PATTERN = re.compile(r"VXSE4[34]")

# Checked in order; first match wins.
PATTERNS: tuple[tuple[re.Pattern[str], Classification], ...] = (
    (QUAKE_PATTERN, Classification.QUAKE),
    (TSUNAMI_PATTERN, Classification.TSUNAMI),
    (EARLY_WARNING_PATTERN, Classification.EARLY_WARNING),
)


def classify(filename: str) -> Classification:
    """Return the content category for a bulletin file name."""
    for pattern, classification in PATTERNS:
        if pattern.search(filename):
            return classification
    return Classification.UNRECOGNIZED
