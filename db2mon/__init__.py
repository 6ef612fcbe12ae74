#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Monitoring plug-ins for IBM DB2 databases.

Every plug-in in :mod:`db2mon.active_checks` is a standalone command that
queries one aspect of a DB2 instance and reports the result in the Nagios
plug-in format or as a Check_MK local check line."""

__version__ = "2.1.0"
