"""In-process stand-ins for the queue, the analyzer, the sandbox launcher, docker and redis."""

import queue

from docker.errors import APIError

from engine.errors import ExecutionFailed
from engine.queue import JobQueue, ScanJobMessage

DRAINED = {"queue": [], "current": {"status": "SUCCESS"}}
BUSY = {"queue": [{"id": "task-1", "status": "PENDING"}], "current": {"status": "IN_PROGRESS"}}


class FakeSonarClient:
    def __init__(self, tasks=None, metrics=None, issues=None, fetch_error=None):
        self.tasks = tasks if tasks is not None else [DRAINED]
        self.metrics = metrics if metrics is not None else {"security_rating": "1.0"}
        self.issues = issues if issues is not None else []
        self.fetch_error = fetch_error
        self.task_calls = []
        self.issue_calls = []

    def component_tasks(self, project_key):
        self.task_calls.append(project_key)
        item = self.tasks[min(len(self.task_calls), len(self.tasks)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    def measures(self, project_key, metric_keys):
        if self.fetch_error:
            raise self.fetch_error
        return {
            "component": {
                "key": project_key,
                "measures": [{"metric": k, "value": v} for k, v in self.metrics.items()],
            }
        }

    def search_issues(self, project_key, types, page_size):
        self.issue_calls.append((project_key, tuple(types), page_size))
        return {"total": len(self.issues), "issues": self.issues}


class FakeLauncher:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def run_scan(self, repository_url, project_key):
        self.calls.append((repository_url, project_key))
        if self.error:
            raise self.error
        return 0


def clone_failure(project_key="scan_x"):
    return ExecutionFailed(project_key, exit_code=128, detail="fatal: repository not found")


class FakeContainer:
    def __init__(self, name, wait_result=None, wait_error=None, logs=b""):
        self.name = name
        self.wait_result = wait_result if wait_result is not None else {"StatusCode": 0}
        self.wait_error = wait_error
        self._logs = logs
        self.killed = False
        self.removed = False
        self.wait_timeout = None

    def wait(self, timeout=None):
        self.wait_timeout = timeout
        if self.wait_error:
            raise self.wait_error
        return self.wait_result

    def logs(self, tail="all"):
        return self._logs

    def kill(self):
        self.killed = True

    def remove(self, force=False):
        self.removed = True


class FakeContainers:
    def __init__(self, **container_kwargs):
        self.container_kwargs = container_kwargs
        self.running = {}
        self.run_calls = []

    def run(self, image, **options):
        self.run_calls.append((image, options))
        name = options["name"]
        if name in self.running and not self.running[name].removed:
            raise APIError(f'Conflict. The container name "/{name}" is already in use')
        container = FakeContainer(name, **self.container_kwargs)
        self.running[name] = container
        return container


class FakeDockerClient:
    def __init__(self, **container_kwargs):
        self.containers = FakeContainers(**container_kwargs)


class FakeRedis:
    def __init__(self):
        self.lists = {}

    def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    def blmove(self, first_list, second_list, timeout, src="LEFT", dest="RIGHT"):
        source = self.lists.get(first_list) or []
        if not source:
            return None
        value = source.pop(0) if src == "LEFT" else source.pop()
        target = self.lists.setdefault(second_list, [])
        if dest == "RIGHT":
            target.append(value)
        else:
            target.insert(0, value)
        return value

    def lrem(self, key, count, value):
        items = self.lists.get(key, [])
        if value in items:
            items.remove(value)
            return 1
        return 0

    def llen(self, key):
        return len(self.lists.get(key, []))


class MemoryJobQueue(JobQueue):
    def __init__(self):
        self._messages = queue.Queue()
        self.in_flight = []
        self.acked = []

    def enqueue(self, message):
        self._messages.put(message.to_json())

    def dequeue(self, timeout):
        try:
            raw = self._messages.get(timeout=timeout) if timeout else self._messages.get_nowait()
        except queue.Empty:
            return None
        message = ScanJobMessage.from_json(raw)
        self.in_flight.append(message)
        return message

    def ack(self, message):
        self.in_flight.remove(message)
        self.acked.append(message)

    def pending_count(self):
        return self._messages.qsize()


class FlakyAckQueue(MemoryJobQueue):
    """Fails the first `failures` acks the way a dropped redis connection would."""

    def __init__(self, failures=1):
        super().__init__()
        self.failures = failures

    def ack(self, message):
        if self.failures:
            self.failures -= 1
            raise ConnectionError("redis went away")
        super().ack(message)
