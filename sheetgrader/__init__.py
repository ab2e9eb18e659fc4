"""
Sheet Grader: Batch evaluation of photographed answer sheets

A sequential grading pipeline that submits answer-sheet images to a vision
model, tracks each sheet through a small state machine and exports styled
multi-sheet Excel reports.
"""

__version__ = "0.1.0"
