#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""The repository root is put on sys.path by pytest because of this file.
This makes "db2mon" and "tests.unit.mocks_and_helpers" importable without
installing the package."""
