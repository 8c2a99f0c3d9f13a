"""
Editable polygon state.

The editor keeps immutable `EditorState` snapshots. Collaborators hand it
command objects through an `EditorSession`; the remote loader and the sync
coordinator feed their results back through the same session.
"""
