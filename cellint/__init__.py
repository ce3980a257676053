"""Cross-cell static analysis for notebook Python code."""
