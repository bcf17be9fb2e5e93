"""Core domain package for telekeep.

Core contains classification, batching, attachment and polling logic without
any Telethon, HTTP or storage-specific code, keeping the pipeline portable.
"""
