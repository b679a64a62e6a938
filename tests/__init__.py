"""Test suite for runner-coordinator."""
