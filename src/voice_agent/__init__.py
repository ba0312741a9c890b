"""
Voice Agent: hands-free spoken conversation with silence endpointing,
rule-based replies and remote/local speech synthesis.
"""

__version__ = "1.0.0"
