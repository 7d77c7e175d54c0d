"""
Change Publisher
Wraps every Content/TV mutation: after a successful write it emits the typed
change event and mirrors the change into the activity feed
"""
import logging
from typing import Any, Callable, Dict

from utils.events import make_change_event
from utils.registry import Registry

logger = logging.getLogger(__name__)

ENTITY_LABELS = {
    'content': 'Content',
    'tv': 'TV'
}


class ChangePublisher:
    """
    Runs registry writes and announces them

    A failing write propagates to the caller unchanged and nothing is
    emitted. No retries happen here.
    """

    def __init__(self, bus, activity, broadcasts=None, registry=None):
        self.bus = bus
        self.activity = activity
        self.broadcasts = broadcasts
        self.registry = registry or Registry()

    def apply(self, entity: str, op: str, write: Callable[[], Any]):
        """
        Run a write and publish its change event

        Args:
            entity: 'content' or 'tv'
            op: 'created', 'updated' or 'deleted'
            write: Callable performing the registry write; returns the model
                   (or a snapshot dict for deletes)

        Returns:
            Whatever the write returned
        """
        result = write()

        payload = result.to_dict() if hasattr(result, 'to_dict') else dict(result)
        event = make_change_event(entity, op, payload)
        self.bus.publish_global(event)
        self.activity.success(f'{ENTITY_LABELS[entity]} {op} successfully')

        logger.debug(f'Published {event.name} for {entity} {event.entity_id}')
        return result

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def create_content(self, data: Dict[str, Any]):
        content = self.apply('content', 'created', lambda: self.registry.create_content(data))
        self.activity.count(content=1)
        if self.broadcasts is not None:
            self.broadcasts.sync_targets(content)
        return content

    def update_content(self, content_id, data: Dict[str, Any]):
        previous_targets = self.registry.get_content(content_id).target_ids
        content = self.apply('content', 'updated', lambda: self.registry.update_content(content_id, data))
        if self.broadcasts is not None:
            self.broadcasts.sync_targets(content, previous_targets)
        return content

    def delete_content(self, content_id):
        return self.apply('content', 'deleted', lambda: self.registry.delete_content(content_id))

    # ------------------------------------------------------------------
    # TVs
    # ------------------------------------------------------------------

    def create_tv(self, data: Dict[str, Any]):
        return self.apply('tv', 'created', lambda: self.registry.create_tv(data))

    def update_tv(self, tv_id, data: Dict[str, Any]):
        return self.apply('tv', 'updated', lambda: self.registry.update_tv(tv_id, data))

    def delete_tv(self, tv_id):
        """Delete a TV, announce the content whose target list lost it, close its topic"""
        tv = self.registry.get_tv(tv_id)
        touched = [content.id for content in self.registry.content_targeting(tv.id)]

        snapshot = self.apply('tv', 'deleted', lambda: self.registry.delete_tv(tv_id))

        for content_id in touched:
            content = self.registry.find_content(content_id)
            if content is not None:
                self.bus.publish_global(make_change_event('content', 'updated', content.to_dict()))
        self.bus.close_topic(snapshot['macAddress'])
        return snapshot
