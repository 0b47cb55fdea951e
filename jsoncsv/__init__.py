"""JSON to CSV converter: conversion core, local web UI and command line."""

__version__ = "1.0.0"
