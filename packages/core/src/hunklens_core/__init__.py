"""Diff analysis and comment-dispatch pipeline for AI pull request reviews."""
