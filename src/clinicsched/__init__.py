"""clinicsched - Clinic room scheduling engine.

Resolves default room assignments, recurring and dated shifts, and per-date
overrides into the concrete room occupancy of every opening day, and
renders it as an HTML preview, a printable PDF or a spreadsheet.
"""

__version__ = "0.1.0"
