"""Tests for depot-reports."""
