"""
Audio processing layer for Ocarina Studio.

Modules:
- dsp: Virtual-clock automation lanes and resampling
- voice_manager: Playing voices and their completion signals
- context: Shared output stream (sounddevice) and mixing
- synthesizer: One tone per request, synthesized or sampled
- scheduler: Transport state machine driving the synthesizer
"""
