"""Lead Radar prospecting pipeline.

This package turns a free-text description of what a business sells into a
ranked, evidence-backed list of Hot/Warm sales leads found on the web.
"""

__version__ = "0.1.0"
