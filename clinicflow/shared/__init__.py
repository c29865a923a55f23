"""Shared validation and error types"""
