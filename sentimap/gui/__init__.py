"""PyQt5 map scene, point layers and the event map widget."""
