# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""distroctl - boot Linux distro instances and check their user service manager."""

__version__ = "0.1.0"
