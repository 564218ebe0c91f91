"""
ThinkPro LMS Assessment Backend

This package implements the assessment side of the ThinkPro school-management
platform:
1. Timed assessment definitions targeted at grade/section cohorts
2. Student attempt tracking with time-boxing and automatic scoring
3. Letter-grade derivation and per-assessment analytics
"""

__version__ = "1.0.0"
