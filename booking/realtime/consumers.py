import json

from channels.generic.websocket import AsyncWebsocketConsumer

from booking.services.events import CASES_GROUP

GLOBAL_ROLES = {"admin", "it"}


class CaseUpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes case changes to signed-in clients so case lists can refresh.

    Anonymous connections are refused.  Users only receive events for
    the countries they work in.
    """

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close()
            return
        self.countries = None if getattr(user, "role", "") in GLOBAL_ROLES else set(user.countries or [])
        await self.channel_layer.group_add(CASES_GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(CASES_GROUP, self.channel_name)

    async def case_updated(self, event):
        # event: {"type": "case.updated", "event": "...", "caseId": int, "status": "...", "country": "...", ...}
        if self.countries is not None and event.get("country") not in self.countries:
            return
        await self.send(json.dumps(event))
