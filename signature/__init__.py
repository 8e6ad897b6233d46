"""
Signature module.

Freehand/upload signature capture, the placement editor for normalized
signature boxes, and PDF embedding (reportlab overlay merged with pypdf).
"""
