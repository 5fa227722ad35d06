# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""vss - interactive script selector and runner."""

__version__ = "0.4.0"
