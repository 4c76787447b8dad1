# -*- coding: utf-8 -*-
"""# impscope Documentation

`Implant electrode impedance calibration and diagnosis`

A (python) library for calibrating the impedance readings of a 32-channel
hearing-implant electrode array, classifying each electrode as normal, short
or open, and keeping a fast, consistent local view of the stored calibration
and measurement records.

- [Types](types/index.html): channel map, records, protocols, validation.
- [Calibration](calib/index.html): two-point bank calibration.
- [Measurement](meas/index.html): session readings and diagnosis.
- [Sync](sync/index.html): record cache and record browsing.
- [Session](session.html): the application-session service.
"""

from ._version import __version__
