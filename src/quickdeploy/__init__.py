# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

"""Interactive single-node deployment of the AlmaLinux Build System."""

__version__ = "0.1.0"
