### DEFAULTS ###

output = "screenshot.png"
width = 1920
height = 1080
quality = 90
image_format = "png"
# quality sent with PNG captures, regardless of what the user asked for
png_quality = 90
# fixed wait after the load event, for late-painting content
delay = 2.0
# 0 lets chrome pick a free port; the one it bound is read back from DevToolsActivePort
debugging_port = 0
