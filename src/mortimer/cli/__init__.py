"""Command line interface for Mortimer"""
