#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from setuptools import find_packages, setup

_CHECKS = (
    "check_db2_backup",
    "check_db2_connection",
    "check_db2_database_size",
    "check_db2_hadr",
    "check_db2_log_consumption",
    "check_db2_memory",
)

setup(
    name="db2mon",
    version="2.1.0",
    description="Nagios and Check_MK plug-ins for IBM DB2 databases",
    license="GPLv2",
    packages=find_packages(include=["db2mon", "db2mon.*"]),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=["pydantic>=2"],
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": [f"{name} = db2mon.active_checks.{name}:main" for name in _CHECKS],
    },
)
