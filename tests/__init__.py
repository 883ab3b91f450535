"""Test suite for the Bondfire authentication core."""
