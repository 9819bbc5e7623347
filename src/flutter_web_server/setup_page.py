"""Fallback page shown while the web bundle has not been built yet.

The page has no server-side data; it is rendered once at import. Its
script drives a tiny client state machine:

    Idle -> Building -> Succeeded (reload after RELOAD_DELAY_MS)
                     -> Idle (button re-enabled, error shown)
"""
from rjsmin import jsmin

RELOAD_DELAY_MS = 5000

SETUP_SCRIPT = r"""
function buildApp() {
  const button = document.getElementById('buildButton');
  const spinner = document.getElementById('spinner');
  const output = document.getElementById('output');

  // Building
  button.disabled = true;
  spinner.style.display = 'block';
  output.style.display = 'block';
  output.textContent = 'Building application...\n';

  fetch('/api/build', {
    method: 'POST',
    headers: { 'Content-Type': 'application/json' }
  })
    .then(response => response.json())
    .then(data => {
      spinner.style.display = 'none';
      if (data.success) {
        output.textContent += 'Build completed successfully!\n';
        output.textContent += data.output || '';
        output.textContent += '\nReloading page in 5 seconds...';
        setTimeout(() => { window.location.reload(); }, __RELOAD_DELAY_MS__);
      } else {
        button.disabled = false;
        output.textContent += 'Build failed: ' + data.message + '\n';
        if (data.error) {
          output.textContent += data.error + '\n';
        }
        if (data.details) {
          output.textContent += data.details;
        }
      }
    })
    .catch(error => {
      button.disabled = false;
      spinner.style.display = 'none';
      output.textContent += 'Error: ' + error.message;
    });
}
"""

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Smart Habit Tracker - Setup</title>
  <style>
    body {
      font-family: Arial, sans-serif;
      display: flex;
      flex-direction: column;
      align-items: center;
      justify-content: center;
      height: 100vh;
      margin: 0;
      background-color: #f5f5f5;
    }
    .container {
      text-align: center;
      padding: 2rem;
      border-radius: 8px;
      box-shadow: 0 4px 6px rgba(0,0,0,0.1);
      background-color: white;
      max-width: 600px;
    }
    h1 { color: #1976d2; }
    button {
      background-color: #1976d2;
      color: white;
      border: none;
      padding: 10px 20px;
      border-radius: 4px;
      cursor: pointer;
      font-size: 16px;
      margin-top: 20px;
    }
    button:hover { background-color: #1565c0; }
    button:disabled { background-color: #90a4ae; cursor: default; }
    .spinner {
      border: 4px solid rgba(0, 0, 0, 0.1);
      border-radius: 50%;
      border-top: 4px solid #1976d2;
      width: 30px;
      height: 30px;
      animation: spin 1s linear infinite;
      margin: 20px auto;
      display: none;
    }
    @keyframes spin {
      0% { transform: rotate(0deg); }
      100% { transform: rotate(360deg); }
    }
    #output {
      margin-top: 20px;
      padding: 10px;
      background-color: #f0f0f0;
      border-radius: 4px;
      text-align: left;
      max-height: 200px;
      overflow-y: auto;
      white-space: pre-wrap;
      display: none;
    }
  </style>
</head>
<body>
  <div class="container">
    <h1>Smart Habit Tracker</h1>
    <p>The Flutter web application needs to be built before it can be used.</p>
    <p>Click the button below to build the application:</p>
    <button id="buildButton" onclick="buildApp()">Build Application</button>
    <div id="spinner" class="spinner"></div>
    <div id="output"></div>
  </div>
  <script>__SETUP_SCRIPT__</script>
</body>
</html>
"""


def render_setup_page() -> bytes:
    script = jsmin(SETUP_SCRIPT.replace("__RELOAD_DELAY_MS__", str(RELOAD_DELAY_MS)))
    return PAGE_TEMPLATE.replace("__SETUP_SCRIPT__", script).encode("utf-8")


SETUP_PAGE = render_setup_page()
