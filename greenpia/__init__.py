"""
Greenpia - Condo Association Portal

Leader rotation, inquiries, forms and shared records for the
Greenpia residents' association.
"""

__version__ = "1.0.0"
