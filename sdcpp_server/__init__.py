"""sdcpp-server: OpenAI-style HTTP API in front of the stable-diffusion.cpp CLI."""
