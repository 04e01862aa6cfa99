"""Leaf collaborators: model client, conversation store, response parser, speech."""
