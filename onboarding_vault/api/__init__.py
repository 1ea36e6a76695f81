"""HTTP surface of the onboarding vault."""
