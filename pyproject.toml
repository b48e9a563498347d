[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "keyframe_ba"
version = "0.1.0"
description = "Keyframe and landmark selection, geometry and residual functions for keyframe-based bundle adjustment"
requires-python = ">=3.10"
keywords = ["bundle adjustment", "visual odometry", "keyframes", "landmarks", "computer vision"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["keyframe_ba"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
