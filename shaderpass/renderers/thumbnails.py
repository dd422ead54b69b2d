"""
A queue that renders thumbnails of shaders, for gallery views.

Rendering needs a render context, which is expensive to create and cannot be
shared between threads. The queue therefore owns a single context, which
lives in a dedicated worker thread, and processes requests one at a time, in
the order in which they were made. The event loop stays free while a
thumbnail is being rendered, and the queue pauses briefly between renders so
that a burst of requests does not monopolize the loop.

Thumbnails are best effort: a shader that fails to compile or render resolves
to ``None``, and that result is cached as well, so that a broken shader is not
rendered again on each request.
"""

import asyncio
import logging
import collections
import concurrent.futures

from ..compiler.multipass import compile_passes
from .uniforms import create_uniforms


logger = logging.getLogger("shaderpass")


class _Worker:
    """The worker thread and the render context that lives in it."""

    def __init__(self, context_factory):
        self.executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="shaderpass-thumbnails"
        )
        self.context_factory = context_factory
        self.context = None

    def get_context(self):
        # Only called from the worker thread
        if self.context is None:
            self.context = self.context_factory()
            logger.debug(f"Created render context {self.context!r}")
        return self.context

    def dispose_context(self):
        context, self.context = self.context, None
        if context is not None:
            context.dispose()


class ThumbnailQueue:
    """A queue for rendering thumbnails with a single shared render context.

    Parameters
    ----------
    context_factory : callable
        Called (without arguments) to create the ``RenderContext``. This
        happens lazily, when the first request is processed.
    delay : float
        The pause in seconds between two renders. Default 0.01.
    time : float
        The logical time at which the thumbnails are rendered. Default 0.
    timeout : float | None
        If given, a render that takes longer than this many seconds resolves
        to ``None``, and its (possibly hanging) context is abandoned. A new
        context is created for the next request. Default None (no timeout).

    Requests are made with ``request()``, from within a running event loop.
    """

    def __init__(self, context_factory, *, delay=0.01, time=0.0, timeout=None):
        if not callable(context_factory):
            raise TypeError("The context_factory must be callable.")
        if timeout is not None and timeout <= 0:
            raise ValueError("The timeout must be positive.")
        self._context_factory = context_factory
        self._delay = float(delay)
        self._time = float(time)
        self._timeout = timeout

        self._cache = {}
        self._queue = collections.deque()
        self._drain_task = None
        self._worker = None
        self._disposed = False

        self.hits = 0
        self.misses = 0
        self.renders = 0

    def __repr__(self):
        return (
            f"<ThumbnailQueue with {len(self._queue)} pending, "
            f"{len(self._cache)} cached at {hex(id(self))}>"
        )

    @property
    def pending(self):
        """The number of requests waiting to be processed."""
        return len(self._queue)

    @property
    def disposed(self):
        return self._disposed

    def get_stats(self):
        """Get (cached, hits, misses, renders) counts."""
        return len(self._cache), self.hits, self.misses, self.renders

    def get_cached(self, key, default=None):
        """Get the cached thumbnail for the given key.

        Note that a failed render is cached as ``None``; use ``key in queue``
        to distinguish it from a key that was never rendered.
        """
        return self._cache.get(key, default)

    def __contains__(self, key):
        return key in self._cache

    def clear_cache(self):
        """Remove all cached thumbnails, including cached failures."""
        self._cache.clear()

    def request(self, key, passes, on_result):
        """Request the thumbnail for the given key.

        The ``passes`` are as accepted by ``compile_passes()``. The
        ``on_result`` callback is called with the PNG data URL, or ``None``
        if the shader could not be rendered. On a cache hit, the callback is
        called right away. Otherwise the request is queued, and the callback
        is called from the event loop once the thumbnail is rendered.

        Requests are not merged: requesting a key again before its first
        request resolves results in a second render.
        """
        if self._disposed:
            raise RuntimeError("Cannot use a disposed ThumbnailQueue.")
        if not callable(on_result):
            raise TypeError("The on_result callback must be callable.")

        if key in self._cache:
            self.hits += 1
            on_result(self._cache[key])
            return

        loop = asyncio.get_running_loop()
        self.misses += 1
        self._queue.append((key, passes, on_result))
        if self._drain_task is None:
            self._drain_task = loop.create_task(self._drain())

    async def join(self):
        """Wait until all pending requests are processed."""
        while self._drain_task is not None:
            await asyncio.wait([self._drain_task])

    async def _drain(self):
        try:
            while self._queue:
                key, passes, on_result = self._queue.popleft()
                result = await self._render_in_worker(key, passes)
                self._cache[key] = result
                try:
                    on_result(result)
                except Exception:
                    logger.exception(f"Error in thumbnail callback for {key!r}")
                await asyncio.sleep(self._delay)
        finally:
            self._drain_task = None

    async def _render_in_worker(self, key, passes):
        if self._worker is None:
            self._worker = _Worker(self._context_factory)
        worker = self._worker
        loop = asyncio.get_running_loop()

        self.renders += 1
        future = loop.run_in_executor(worker.executor, self._render, worker, passes)
        try:
            if self._timeout is None:
                return await future
            else:
                return await asyncio.wait_for(future, self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Rendering thumbnail {key!r} took more than {self._timeout}s, "
                "abandoning its render context."
            )
            self._abandon_worker(worker)
            return None
        except Exception as err:
            logger.warning(f"Failed to render thumbnail {key!r}: {err}")
            return None

    def _render(self, worker, passes):
        # Runs in the worker thread
        context = worker.get_context()
        result = compile_passes(passes, context.compile_program)
        uniforms = create_uniforms(context.size, time=self._time)
        context.render_frame(result.programs, uniforms)
        return context.capture()

    def _abandon_worker(self, worker):
        if self._worker is worker:
            self._worker = None
        # The thread may hang forever; don't wait for it. If it finishes
        # after all, it disposes the context itself.
        worker.executor.submit(worker.dispose_context)
        worker.executor.shutdown(wait=False)

    def dispose(self):
        """Cancel pending requests, release the render context, and clear the cache.

        The callbacks of pending requests are not called. A render that is
        in progress is not waited for. It finishes in the worker thread, its
        result is dropped, and the context is disposed after it. The queue
        cannot be used after it is disposed.
        """
        if self._disposed:
            return
        self._disposed = True
        self._queue.clear()
        if self._drain_task is not None:
            self._drain_task.cancel()
            self._drain_task = None
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.executor.submit(worker.dispose_context)
            worker.executor.shutdown(wait=False)
        self._cache.clear()
