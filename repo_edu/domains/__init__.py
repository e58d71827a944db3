# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain packages for repo-edu.

- roster: course roster data and the rules over it
- profile: the profile document store, history and validation scheduling
"""
