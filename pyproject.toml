[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "sitewarden"
version = "0.1.0"
description = "Limit daily time spent on chosen websites by sniffing traffic and dropping it with iptables"
requires-python = ">=3.10"
dependencies = []
keywords = ["iptables", "ip6tables", "firewall", "website", "blocker", "time-limit"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Firewalls",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sitewarden = "sitewarden.blocker:main"
sitewarden-add = "sitewarden.client:main"

[tool.setuptools.packages.find]
include = ["sitewarden*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
