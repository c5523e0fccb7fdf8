#!/usr/bin/env python3
"""
Ticket Printer - launcher.
Runs the client from a source checkout: python main.py
"""

from ticket_printer.main import main


if __name__ == "__main__":
    main()
