"""Test configuration: environment must be set before chathub is imported."""
import tests.support  # noqa: F401
