"""Test suite for the city catalog."""
