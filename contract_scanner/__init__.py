"""
Contract Scanner - AI Contract Risk Analysis Service

Turns a contract plus analysis parameters (type, jurisdiction, perspective,
focus areas, report format) into a structured risk report. Prompt texts are
managed through a runtime-editable registry, and a locally synthesized
analysis is returned whenever the language model can not be reached.
"""

__version__ = "1.0.0"
