#!/usr/bin/env python3
"""PageInk - PDF annotation and signing tool

Draw, write, highlight, crop, rotate and sign PDF pages, then export the
result as a new PDF.
"""

import argparse
import sys
import os
import logging

from PySide6.QtWidgets import QApplication
from PySide6.QtCore import Qt

from pageink import __version__
from pageink.logging_utils import configure_logging
from pageink.main_window import MainWindow

logger = logging.getLogger("pageink")


def main():
    parser = argparse.ArgumentParser(description="Annotate and sign PDF documents")
    parser.add_argument("file", nargs="?", help="PDF file to open")
    parser.add_argument("--debug", action="store_true", help="also log to the console")
    args, qt_args = parser.parse_known_args()

    configure_logging(debug=args.debug)
    logger.info("Starting PageInk %s", __version__)

    # High DPI support
    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    app = QApplication([sys.argv[0]] + qt_args)
    app.setApplicationName("PageInk")
    app.setApplicationVersion(__version__)
    app.setOrganizationName("PageInk")
    app.setStyle("Fusion")

    window = MainWindow()
    window.show()

    if args.file:
        if os.path.exists(args.file) and args.file.lower().endswith('.pdf'):
            window.open_file(args.file)
        else:
            logger.warning("Not a PDF file: %s", args.file)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
