[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ueventkit"
version = "0.1.0"
description = "Listen to Linux kernel and udev uevents, crawl existing devices, and filter them with rules"
requires-python = ">=3.10"
dependencies = []
keywords = ["udev", "uevent", "netlink", "linux", "hotplug", "devices", "sysfs"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
    "Topic :: System :: Monitoring",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ueventkit = "ueventkit.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ueventkit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
strict = true
