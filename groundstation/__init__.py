"""
Tello ground station

Package structure:
- config.py: Constants and startup settings
- errors.py: Exception types
- telemetry.py: Telemetry snapshot parsed from the Tello state packet
- shared_state.py: Stick axes and latest telemetry shared between threads
- events.py: Typed device and link events
- controller_profile.py: Joystick id mapping profiles
- input_controller.py: Event router and pygame joystick pump
- drone_threads.py: Repeating tasks and thread helpers
- flight_control.py: Dead-zones, validation and the 50ms control ticks
- aircraft_link.py: djitellopy link, telemetry poller, video packet receiver
- video_ingest.py: ffmpeg decoder and the frame pipeline
- overlay.py: Telemetry overlay
- recording.py: Recording and broadcast sinks
- stream_server.py: MJPEG live stream
- initialization.py: Startup and teardown
"""

__version__ = "1.0.0"
