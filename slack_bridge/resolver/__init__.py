"""
Identity and conversation resolution.

Modules
=======

``events``
    :class:`~slack_bridge.resolver.events.Event`, the closed model of an
    inbound Slack frame.
``identity``
    The actor variants an event can be attributed to.
``conversation``
    Conversation records and the ``is_*`` flag classification.
``bot_map``
    :class:`~slack_bridge.resolver.bot_map.BotUserMap`, the permanent
    bot id to user id registry.
``pipeline``
    :class:`~slack_bridge.resolver.pipeline.EventResolver`, which ties the
    above to :class:`~slack_bridge.clients.slack.SlackClient` and emits
    resolved messages.

Import ``EventResolver`` from ``slack_bridge.resolver.pipeline``; this
package does not re-export it because the Slack client depends on the
lighter modules here.
"""
