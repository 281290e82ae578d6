"""Audience Insights API"""
