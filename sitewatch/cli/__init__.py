"""Sitewatch command line interface"""
