#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Convert CSV data or a published Google Sheet into TownStix US-10 name tag sheets.
"""

import sys

import name_tag_sheets.cli


if __name__ == "__main__":
	sys.exit(name_tag_sheets.cli.main())
