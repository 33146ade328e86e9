"""Shared test infrastructure: ddcutil output samples and command mocks."""
