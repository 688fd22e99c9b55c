"""External collaborators invoked by the pipeline.

This module handles:
- Importing the environment directory and building the command environment
- Running external commands with output captured to the diagnostic log
- Installing the Node.js toolchain and external binary bundles
- Writing shell-profile fragments for the deployed runtime
"""
