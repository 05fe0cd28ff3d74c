"""
aship engine: error types, execution results, the ansible-playbook
executor and the run-mode resolver.
"""
