"""Command line tools. Run with: python -m backend_defi.tools.<name>"""
