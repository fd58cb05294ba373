"""Provide utility helpers for cwsens.

Modules include logging helpers, diagnostics summaries, and chi-square
false-alarm conversions reused across the package.

See Also:
    cwsens.utils.logging: Logging helpers.
    cwsens.utils.stats: False-alarm helpers.
    cwsens.utils.diagnostics: Summary tables for histograms and solver output.
"""
