"""Hook ordering harness: scripted SSE stub, quiescent hook collector, validator."""
