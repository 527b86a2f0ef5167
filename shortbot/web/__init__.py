"""HTTP redirect server and its HTML pages."""
