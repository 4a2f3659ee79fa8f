#!/usr/bin/env python3
"""
Service Bus Subscription Monitor Setup Configuration
Liveness monitoring for long-lived Service Bus subscription workers
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()


def read_requirements(path):
    with open(path, "r", encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip() and not line.startswith("#")]


requirements = read_requirements("requirements.txt")
test_requirements = read_requirements("requirements-test.txt")

setup(
    name="sbmonitor",
    version="1.0.0",
    description="Retry-policy aware liveness monitor for Service Bus subscription workers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["sbmonitor", "sbmonitor.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: System :: Monitoring",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
    },
    entry_points={
        "console_scripts": [
            "sbmonitor=sbmonitor.backend.main:main",
        ],
    },
    include_package_data=True,
    keywords="service-bus liveness health-check kubernetes retry monitoring",
)
