# SPDX-License-Identifier: Apache-2.0
"""Novel reader: page translation with fallback backends and narration."""

__version__ = "0.1.0"
