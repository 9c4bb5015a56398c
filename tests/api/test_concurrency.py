"""Concurrent requests — sync work stays off the event loop, contexts stay isolated.

Tests cover:
    - A blocking sync action does not stall an async action on the same host
    - Overlapping requests each get their own RequestContext and params
    - Sync validate_params and sync custom executors run in the threadpool
"""

import asyncio
import threading

from restbind.api.binder import RestRouter
from restbind.core.actions import Action


async def test_blocking_sync_action_does_not_stall_other_requests(host, client, store):
    started, released = threading.Event(), threading.Event()

    class Blocking(Action):
        def execute(self, params):
            started.set()
            return {"released": released.wait(timeout=2)}

    class Release(Action):
        async def execute(self, params):
            for _ in range(200):
                if started.is_set():
                    break
                await asyncio.sleep(0.01)
            released.set()
            return "released"

    class SlowController:
        pass

    store.define_action(Blocking, "GET /slow")
    store.define_action(Release, "GET /release")
    store.define_controller(SlowController, {"base_uri": "/s", "actions": [Blocking, Release]})
    RestRouter(controller=SlowController, metadata=store).bind(host)

    slow, release = await asyncio.gather(
        client.get("/s/slow"), client.get("/s/release"),
    )
    assert release.json() == "released"
    assert slow.json() == {"released": True}


async def test_overlapping_requests_get_independent_contexts(host, client, store):
    # Both requests must be inside execute() at once to pass the barrier
    barrier = threading.Barrier(2, timeout=2)
    contexts = []

    class Hold(Action):
        def execute(self, params):
            contexts.append(self.context)
            barrier.wait()
            return {
                "param": params["id"],
                "context": self.context.params["id"],
                "trace_id": self.context.trace_id,
            }

    class HoldController:
        pass

    store.define_action(Hold, "GET /hold/:id")
    store.define_controller(HoldController, {"actions": [Hold]})
    RestRouter(controller=HoldController, metadata=store).bind(host)

    first, second = await asyncio.gather(
        client.get("/hold/1", headers={"x-trace-id": "t-1"}),
        client.get("/hold/2", headers={"x-trace-id": "t-2"}),
    )
    assert first.json() == {"param": "1", "context": "1", "trace_id": "t-1"}
    assert second.json() == {"param": "2", "context": "2", "trace_id": "t-2"}
    assert len(contexts) == 2
    assert contexts[0] is not contexts[1]


async def test_sync_validate_and_executor_leave_the_loop_thread(host, client, store):
    loop_thread = threading.get_ident()
    threads = {}

    class Validated(Action):
        def validate_params(self, params):
            threads["validate"] = threading.get_ident()
            return params

        async def execute(self, params):
            return params

    def executor(context, request, responder):
        threads["executor"] = threading.get_ident()
        return responder.success({"id": context.params["id"]})

    class Custom(Action):
        pass

    class ThreadController:
        pass

    store.define_action(Validated, "GET /validated?q")
    store.define_action(Custom, {"uri": "/custom/:id", "executor": executor})
    store.define_controller(ThreadController, {"actions": [Validated, Custom]})
    RestRouter(controller=ThreadController, metadata=store).bind(host)

    assert (await client.get("/validated?q=1")).json() == {"q": "1"}
    assert (await client.get("/custom/7")).json() == {"id": "7"}
    assert threads["validate"] != loop_thread
    assert threads["executor"] != loop_thread
