"""Services: address filtering, CA fingerprinting, token encoding and the
orchestration that ties them together.
"""
