"""
Connection helpers.

Only a connectivity probe is provided; playbook execution itself happens
in ansible-playbook.
"""
