"""Tests for version extraction utilities."""
from core.version_utils import docker_image_tag, major_version, normalize_version


def test_normalize_version_strips_range_operators():
    """Test caret, tilde and comparison prefixes are removed."""
    assert normalize_version("^18.2.0") == "18.2.0"
    assert normalize_version("~1.2.3") == "1.2.3"
    assert normalize_version(">=3.8,<4") == "3.8"
    assert normalize_version("==2.31.0") == "2.31.0"
    assert normalize_version("~> 7.0") == "7.0"


def test_normalize_version_wildcards_and_prefix():
    """Test x-ranges and a leading v."""
    assert normalize_version("1.2.x") == "1.2"
    assert normalize_version("v1.9.1") == "1.9.1"
    assert normalize_version("^16 || ^18") == "16"


def test_normalize_version_unpinned():
    """Test specifiers without a concrete version return None."""
    assert normalize_version("*") is None
    assert normalize_version("latest") is None
    assert normalize_version("") is None
    assert normalize_version(None) is None
    assert normalize_version("git+https://github.com/user/repo.git") is None
    assert normalize_version("workspace:*") is None


def test_normalize_version_prerelease():
    """Test pre-release suffixes are kept."""
    assert normalize_version("^2.0.0-beta.3") == "2.0.0-beta.3"


def test_normalize_version_rejects_non_strings():
    assert normalize_version(18) is None
    assert normalize_version({"node": "18"}) is None


def test_major_version():
    """Test major component extraction."""
    assert major_version("^14.17.0") == 14
    assert major_version(">=16") == 16
    assert major_version("*") is None


def test_major_version_with_build_metadata():
    """Test build metadata and pre-release suffixes do not break the major."""
    assert major_version("18+x") == 18
    assert major_version(">=20.1.0+build.5") == 20
    assert major_version("3-rc1") == 3
    assert major_version("not-a-version") is None


def test_docker_image_tag():
    """Test FROM line tag parsing."""
    assert docker_image_tag("FROM node:18-alpine") == "18"
    assert docker_image_tag("FROM python:3.12-slim AS build") == "3.12"
    assert docker_image_tag("FROM --platform=linux/amd64 golang:1.22 AS builder") == "1.22"
    assert docker_image_tag("FROM nginx") is None
    assert docker_image_tag("FROM ubuntu:latest") is None
