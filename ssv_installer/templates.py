"""Templates for every file the installer generates.

Placeholders use ``string.Template`` syntax (``${name}``). None of the target
formats need a literal ``$``; write ``$$`` if one ever does.
"""

from __future__ import annotations

from typing import Dict

SATELLITE_SERVICE = "wyoming-satellite.service"
WAKEWORD_SERVICE = "wyoming-openwakeword.service"
LEDS_SERVICE = "2mic_leds.service"
PULSEAUDIO_SERVICE = "pulseaudio.service"
SNAPCLIENT_SERVICE = "snapclient.service"

SATELLITE_UNIT = """\
[Unit]
Description=Wyoming Satellite
Wants=network-online.target
After=network-online.target
Requires=wyoming-openwakeword.service
Requires=2mic_leds.service

[Service]
Type=simple
ExecStart=${satellite_dir}/script/run \\
  --name '${satellite_name}' \\
  --uri 'tcp://0.0.0.0:10700' \\
  --mic-command 'arecord -D ${mic_device} -r 16000 -c 1 -f S16_LE -t raw' \\
  --snd-command 'aplay -D ${snd_device} -r 22050 -c 1 -f S16_LE -t raw' \\
  --wake-uri 'tcp://127.0.0.1:10400' \\
  --wake-word-name '${wake_word}' \\
  --event-uri 'tcp://127.0.0.1:10500'
WorkingDirectory=${satellite_dir}
Restart=always
RestartSec=1
User=${username}

[Install]
WantedBy=default.target
"""

OPENWAKEWORD_UNIT = """\
[Unit]
Description=Wyoming openWakeWord

[Service]
Type=simple
ExecStart=${wakeword_dir}/script/run --uri 'tcp://127.0.0.1:10400'
WorkingDirectory=${wakeword_dir}
Restart=always
RestartSec=1

[Install]
WantedBy=default.target
"""

LEDS_UNIT = """\
[Unit]
Description=2Mic LEDs

[Service]
Type=simple
ExecStart=${examples_dir}/.venv/bin/python3 2mic_service.py --uri 'tcp://127.0.0.1:10500'
WorkingDirectory=${examples_dir}
Restart=always
RestartSec=1

[Install]
WantedBy=default.target
"""

SATELLITE_CONFIG = """\
server:
  bind: 0.0.0.0
  port: 10300

audio:
  frame-width: 512
  sampling-rate: 16000
  sample-format: s16le
  channels: 1
"""

PULSEAUDIO_UNIT = """\
[Unit]
Description=PulseAudio system server
After=sound.target

[Service]
Type=notify
ExecStart=/usr/bin/pulseaudio --daemonize=no --system --realtime --log-target=journal
Restart=on-failure

[Install]
WantedBy=multi-user.target
"""

PULSE_SYSTEM_PA = """\
#!/usr/bin/pulseaudio -nF
load-module module-native-protocol-unix auth-anonymous=1
load-module module-udev-detect
load-module module-alsa-sink device=${sink_device} sink_name=${sink_name}
load-module module-always-sink
load-module module-role-ducking trigger_roles=announce,phone,notification,event ducking_roles=any_role volume=${duck_volume}
set-default-sink ${sink_name}
"""

SNAPCLIENT_DEFAULT = """\
SNAPCLIENT_OPTS="-h localhost -s ${snapcast_hostname}"
"""

RESUME_UNIT = """\
[Unit]
Description=Resume SSV installation after reboot
Wants=network-online.target
After=network-online.target

[Service]
Type=oneshot
ExecStart=${resume_command}
RemainAfterExit=no

[Install]
WantedBy=multi-user.target
"""

TEMPLATES: Dict[str, str] = {
    SATELLITE_SERVICE: SATELLITE_UNIT,
    WAKEWORD_SERVICE: OPENWAKEWORD_UNIT,
    LEDS_SERVICE: LEDS_UNIT,
    "satellite-config.yml": SATELLITE_CONFIG,
    PULSEAUDIO_SERVICE: PULSEAUDIO_UNIT,
    "system.pa": PULSE_SYSTEM_PA,
    "snapclient": SNAPCLIENT_DEFAULT,
    "ssv-installer-resume.service": RESUME_UNIT,
}
