#!/usr/bin/env python3
"""
Entry point for the Document Scanner CLI.

Usage:
    python main.py scan.pdf                         # OCR and deduplicate a PDF scan
    python main.py page1.jpg page2.jpg page3.jpg    # Pages given as images
    python main.py scan.pdf --output-pdf clean.pdf  # Save the kept pages
    python main.py scan.pdf --json                  # Machine-readable report
"""

from docscan.cli import main

if __name__ == "__main__":
    main()
