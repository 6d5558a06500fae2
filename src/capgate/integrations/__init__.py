"""
Web framework integrations.

The engine itself never touches framework request objects; integrations
translate requests into Principal/ResourceContext and decisions into
responses.
"""
