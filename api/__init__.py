# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""HTTP API helpers -- request models and the JSON response envelope."""
