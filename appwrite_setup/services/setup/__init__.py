"""Setup (provisioning) services.

This package turns a declarative schema plan into ordered Appwrite create calls:
the plan applier handles one collection/addition/bucket, the orchestrator sequences
them for a whole run.
"""
