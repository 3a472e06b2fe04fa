"""Test suite for the openplay package."""
