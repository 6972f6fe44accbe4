"""Tests for the grounded probe service."""
