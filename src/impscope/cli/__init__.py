"""
Command-line interface for impscope.

The CLI is built using the Click framework and works against the record
store configured in the settings (a JSON store directory by default).

Examples
--------
Calibrating from a readings file and storing the result:
```bash
$ impscope calibrate readings.json -d AB12CD34 --a-min 1 --a-max 16 --b-min 17 --b-max 32 --save
```

Diagnosing with the stored calibration:
```bash
$ impscope diagnose readings.json -d AB12CD34 --save
```

CLI Tree
--------

```
$ impscope --tree
cli
└── calibrate
└── diagnose
└── records
    └── delete
    └── list
    └── show
└── settings
    └── init
    └── set
    └── show
```
"""

from .base import cli

__all__ = ["cli"]
