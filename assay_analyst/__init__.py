"""
Assay Analyst: plate-assay well detection, color sampling and linear
calibration curves.
"""

__version__ = "3.0.0"
