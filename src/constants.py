"""
Centralized definitions for all project-wide constants.

This module consolidates file paths, directory names, and other static values
shared by the analysis requester, the report store and the web application.

Attributes:
    PROJECT_ROOT (str): The absolute path to the project's root directory.
    CONFIG_DIR (str): The name of the configuration directory.
    OUTPUT_DIR (str): The name of the main output directory.
    ASSETS_DIR (str): The name of the directory for static assets like CSS.
    LOCAL_REPORTS_DIR (str): The default directory for the local report store.
    CAREER_GAP_CONFIG_FILENAME (str): The filename for the application config.
    REPORTS_COLLECTION (str): The default document store collection name.
"""

import os

# --- Project Root ---
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# --- Top-Level Directory Names ---
CONFIG_DIR = "config"
OUTPUT_DIR = "output"
ASSETS_DIR = "assets"

# --- Derived and Specific Paths ---
LOCAL_REPORTS_DIR = os.path.join(OUTPUT_DIR, "career_reports")

# --- Configuration Filenames ---
CAREER_GAP_CONFIG_FILENAME = "config_career_gap.yaml"

# --- Document Store ---
REPORTS_COLLECTION = "careerReports"
