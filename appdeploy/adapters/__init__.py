"""
Adapters — the boundary between the install workflow and the OS.

Everything that touches the registry, Task Scheduler or user sessions
lives here, behind small ABCs the services accept as collaborators.
"""
