"""repo-edu core.

Profile document engine for the repo-edu course repository manager:
rosters, groups, group sets and assignments held in an undoable,
referentially consistent in-memory document.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
