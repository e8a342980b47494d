# ueventkit

Tools for working with Linux device events:

- read kernel and udev *uevents* from a netlink socket as they happen,
- list devices that are already plugged in by crawling the `uevent` files under `/sys/devices`,
- filter both with simple rules: regular expressions on the action and on environment variables.

Talking to the kernel needs Linux. Parsing and rule matching work anywhere.

## Installation

```
pip install ueventkit
```

## Command line

Watch events as devices come and go (each matching event is logged):

```
ueventkit --monitor
```

List the devices present right now:

```
ueventkit --info
```

Options (each may also be written with a single dash, e.g. `-monitor`):

| Option | Meaning |
| --- | --- |
| `--monitor` | listen on the netlink socket for udev-processed events |
| `--info` | crawl sysfs and log every device found |
| `--file PATH` | JSON rule file; without it every event or device is shown |
| `--sysfs-root DIR` | directory crawled by `--info` (default `/sys/devices`) |

`--monitor` and `--info` cannot be used together; with neither, the command
does nothing and exits with status 0. Both modes stop cleanly on Ctrl-C,
SIGTERM or SIGQUIT. A missing or malformed rule file, an invalid regular
expression, or a socket that cannot be opened ends the command with status 1.

Either mode takes an optional rule file:

```
ueventkit --monitor --file rules.json
```

A rule file is a JSON object holding a list of rules. An event is shown if
**any** rule matches it; a rule matches when its `action` pattern matches the
event's action (if given) **and** every variable named in `env` is present and
matches its pattern. Patterns are Python regular expressions and match
anywhere in the value (`re.search`). In `--info` mode only the `env` part of
the rules is used, since existing devices carry no action.

```json
{
  "rules": [
    {"action": "add", "env": {"SUBSYSTEM": "usb", "DEVTYPE": "usb_device"}},
    {"env": {"DEVNAME": "hidraw\\d+"}}
  ]
}
```

## Library

### Parsing events — `ueventkit.uevent`

`parse_uevent` accepts both the kernel's `action@devpath` messages and the
messages udev rebroadcasts with its `libudev` header:

```python
from ueventkit.uevent import KObjAction, UEventFormatError, parse_uevent

event = parse_uevent(b"add@/devices/virtual/misc/demo\x00SUBSYSTEM=misc\x00")
assert event.action == KObjAction.ADD
print(event.kobj, event.env["SUBSYSTEM"])

try:
    parse_uevent(b"garbage")
except UEventFormatError as exc:
    print("rejected:", exc)
```

`UEvent` is a dataclass with `action`, `kobj` and `env`. `to_bytes()` turns it
back into the kernel wire form, and `equal()` returns `True` when action,
kobject and environment all agree. `parse_kobj_action` turns a name such as
`"remove"` into a `KObjAction`, raising `UEventFormatError` for unknown names.

### Matching — `ueventkit.matcher`

```python
from ueventkit.matcher import RuleDefinition, RuleDefinitions

rules = RuleDefinitions()
rules.add_rule(RuleDefinition(action="add", env={"SUBSYSTEM": "usb"}))
rules.compile()

if rules.evaluate(event):
    print("interesting:", event)
```

`RuleDefinitions.from_json` builds the same object from the JSON shown above.
`compile()` raises `re.error` for an invalid pattern. Besides `evaluate`, both
`RuleDefinition` and `RuleDefinitions` offer `evaluate_action` and
`evaluate_env` to test one part alone.

### Watching the netlink socket — `ueventkit.conn`

```python
from ueventkit.conn import Mode, UEventConn

with UEventConn() as conn:
    conn.connect(Mode.UDEV_EVENT)
    for event in conn.monitor(rules):
        print(event.action, event.kobj)
```

Use `Mode.KERNEL_EVENT` for raw kernel events and `Mode.UDEV_EVENT` for the
richer events udev sends after processing them (vendor names, serial numbers
and so on). `monitor` raises `ValueError` if the matcher does not compile;
messages that cannot be parsed are logged and skipped. Setting
`matched_uevent_limit` on the connection ends the iteration after that many
matched events. `read_msg()` and `read_uevent()` read a single message.

### Existing devices — `ueventkit.crawler`

```python
from ueventkit.crawler import existing_devices

for device in existing_devices(rules, "/sys/devices"):
    print(device.kobj, device.env)
```

Each `Device` carries the directory of its `uevent` file and the variables
read from it, with `SUBSYSTEM` filled in from the device's `subsystem` link
when there is one. Directories are walked in name order without following
symbolic links. `event_from_uevent_file` and `event_from_uevent_data` parse a
single `uevent` file's `NAME=value` lines.

## What it does not do

ueventkit only observes events. It does not run udev rules, create device
nodes, or send events of its own.

## Running the tests

```
pip install "ueventkit[test]"
pytest
```