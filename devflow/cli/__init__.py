"""Command line interface for devflow"""
